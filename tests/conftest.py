import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.registry import QUESTION_KEY, SCORING_KEY, STT_KEY, bind_model, default_registry
from config.settings import settings
from storage.migrate import migrate
from tests.fakes import FakeScorer, FakeStt


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


@pytest.fixture(autouse=True)
def clean_registry():
    default_registry.clear()
    yield
    default_registry.clear()


@pytest.fixture
def fake_scorer():
    scorer = FakeScorer(80, 60, 100, 70, 90)
    bind_model(SCORING_KEY, scorer)
    return scorer


@pytest.fixture
def fake_stt():
    stt = FakeStt()
    bind_model(STT_KEY, stt)
    return stt


@pytest.fixture
def fake_generator():
    calls = []

    def generate(**kwargs):
        calls.append(kwargs)
        return {
            "questions": [
                {"text": f"Generated question {index + 1}?", "type": "behavioral"}
                for index in range(kwargs["count"])
            ]
        }

    bind_model(QUESTION_KEY, generate)
    return calls
