from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.routes import router


app = FastAPI()
app.include_router(router)
client = TestClient(app)

HEADERS = {"X-User-Id": "user-1"}
ANSWER = "I owned the incident review, rewrote the alerting rules and paging dropped by half."


def _start(**overrides):
    body = {
        "durationMinutes": 15,
        "jobTitle": "Backend Engineer",
        "companyName": "Acme",
        "candidateName": "Priya",
    }
    body.update(overrides)
    resp = client.post("/api/mock/sessions", json=body, headers=HEADERS)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _advance_to_questions(session_id):
    assert client.post(f"/api/mock/sessions/{session_id}/speak", headers=HEADERS).status_code == 200
    for text in ("Hi there", "Doing well, thanks", "Sounds great"):
        resp = client.post(f"/api/mock/sessions/{session_id}/reply", json={"text": text}, headers=HEADERS)
        assert resp.status_code == 200, resp.text
    return resp.json()


def test_full_flow(fake_scorer, fake_stt):
    created = _start()
    session_id = created["session"]["id"]
    assert created["session"]["currentPhase"] == "welcome"
    assert len(created["questions"]) == 3
    assert created["interviewerVoiceConfig"]["name"]

    first = _advance_to_questions(session_id)
    assert first["phase"] == "questions"
    assert first["question"]["id"] == created["questions"][0]["id"]
    assert first["progress"]["percentage"] == 30

    transcribed = client.post(
        f"/api/mock/sessions/{session_id}/transcribe?contextType=answer",
        content=b"\x00" * 3200,
        headers={**HEADERS, "Content-Type": "audio/webm"},
    )
    assert transcribed.status_code == 200, transcribed.text
    body = transcribed.json()
    assert body["transcript"] == fake_stt.transcript
    assert fake_stt.calls[0]["mime_type"] == "audio/webm"

    for index, question in enumerate(created["questions"]):
        resp = client.post(
            f"/api/mock/sessions/{session_id}/answers",
            json={"questionId": question["id"], "transcript": ANSWER, "words": body["words"], "confidence": 0.9},
            headers=HEADERS,
        )
        assert resp.status_code == 200, resp.text
        answer = resp.json()
        assert answer["sessionFinished"] is (index == 2)
    assert answer["progress"]["phase"] == "wrap_up"
    assert answer["progress"]["percentage"] == 95

    done = client.post(f"/api/mock/sessions/{session_id}/complete", headers=HEADERS)
    assert done.status_code == 200, done.text
    report = done.json()
    assert report["report"]["overallScore"] == 80
    assert report["statistics"]["questionsAnswered"] == 3
    assert report["alreadyCompleted"] is False

    again = client.post(f"/api/mock/sessions/{session_id}/complete", headers=HEADERS)
    assert again.json()["alreadyCompleted"] is True
    assert again.json()["report"] == report["report"]

    detail = client.get(f"/api/mock/sessions/{session_id}", headers=HEADERS).json()
    assert detail["session"]["status"] == "completed"
    assert detail["session"]["overallScore"] == 80
    assert detail["progress"]["is_complete"] is True
    assert [ex["answer_score"] for ex in detail["exchanges"]] == [80, 60, 100]

    listed = client.get("/api/mock/sessions", headers=HEADERS).json()
    assert [item["id"] for item in listed] == [session_id]


def test_report_pdf_download(fake_scorer):
    created = _start()
    session_id = created["session"]["id"]

    early = client.get(f"/api/mock/sessions/{session_id}/report.pdf", headers=HEADERS)
    assert early.status_code == 409
    assert early.json()["detail"]["code"] == "report_not_ready"

    _advance_to_questions(session_id)
    client.post(
        f"/api/mock/sessions/{session_id}/answers",
        json={"questionId": created["questions"][0]["id"], "transcript": ANSWER},
        headers=HEADERS,
    )
    assert client.post(f"/api/mock/sessions/{session_id}/complete", headers=HEADERS).status_code == 200

    resp = client.get(f"/api/mock/sessions/{session_id}/report.pdf", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert "backend-engineer" in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")


def test_delete_session():
    session_id = _start()["session"]["id"]
    resp = client.delete(f"/api/mock/sessions/{session_id}", headers=HEADERS)
    assert resp.status_code == 204
    missing = client.get(f"/api/mock/sessions/{session_id}", headers=HEADERS)
    assert missing.status_code == 404
