"""Scripted interviewer lines for the conversational phases.

Line choices are drawn from a generator seeded with the session id and a slot
name, so replaying a session produces the same wording.
"""
from __future__ import annotations

import random
import re
from typing import Dict, List, Literal, Optional, Sequence

from .job_context import detect_company_type, detect_industry, detect_seniority
from .personas import introduction
from .types import Session

Sentiment = Literal["positive", "neutral", "negative"]

POSITIVE_WORDS = [
    "great", "good", "excellent", "awesome", "wonderful", "fantastic",
    "amazing", "perfect", "nice", "lovely", "beautiful", "happy",
    "excited", "love", "best", "pretty good", "doing well", "well", "fine",
]

NEGATIVE_WORDS = [
    "bad", "terrible", "awful", "horrible", "not good", "not great",
    "tough", "difficult", "hard", "rough", "challenging", "struggling",
    "tired", "exhausted", "stressed", "busy", "overwhelmed", "sick",
]

WELCOME_GREETINGS = [
    "Hi {name}! How are you doing today?",
    "Hello {name}, good to meet you! How's your day going so far?",
    "Hey {name}! Thanks for being here. How are you?",
    "Hi {name}! Great to have you here today. How are you doing?",
]

SMALL_TALK: List[Dict[str, object]] = [
    {
        "id": "how_are_you",
        "opening": "Before we start, how has your week been treating you?",
        "responses": {
            "positive": ["That's great to hear! Thanks for taking the time to chat with me today.", "Wonderful! I'm glad you're doing well."],
            "neutral": ["Fair enough. Thanks for making the time anyway.", "Gotcha. Hopefully this conversation will be interesting for you."],
            "negative": ["Oh, I'm sorry to hear that. Hopefully we can turn your day around a bit!", "That's tough. I appreciate you being here anyway."],
        },
        "transition": "So, let's jump in.",
    },
    {
        "id": "weekend",
        "opening": "How was your weekend?",
        "responses": {
            "positive": ["That sounds amazing! Glad you got to enjoy it.", "That's great! Sounds like you made the most of it."],
            "neutral": ["Fair enough. Sometimes the simple weekends are the best!", "Sure. Not every weekend has to be an adventure."],
            "negative": ["Oh, that's too bad. Hopefully this week will be better!", "That's unfortunate. Thanks for still showing up today."],
        },
        "transition": "Well, let's get into it.",
    },
    {
        "id": "tech_check",
        "opening": "Did you have any trouble finding the link or joining today?",
        "responses": {
            "positive": ["Perfect! Glad everything worked smoothly.", "Great! That makes things easy for both of us."],
            "neutral": ["Okay, good. We're all set then.", "Alright. Glad you made it."],
            "negative": ["Sorry about that! Technology can be tricky. Glad you made it in the end.", "Ugh, I know how that goes. Thanks for sticking with it."],
        },
        "transition": "Alright, let's get started.",
    },
    {
        "id": "interview_exp",
        "opening": "Have you done many interviews like this one recently?",
        "responses": {
            "positive": ["Nice, then you'll feel right at home.", "Great, you've had some practice then."],
            "neutral": ["Okay, good to know.", "Got it. We'll keep things relaxed."],
            "negative": ["No worries at all. Think of this as a conversation.", "That's completely fine. We'll take it one step at a time."],
        },
        "transition": "Let's dive into the interview.",
    },
]

INTRO_OPENINGS = [
    "So, let me tell you a bit about {company} and the role we're hiring for.",
    "I'd like to give you some context about {company} and this opportunity.",
    "Before we dive into questions, let me share what we're building at {company}.",
    "Let me set the stage by telling you about {company} and what we're looking for.",
]

INDUSTRY_DESCRIPTIONS = {
    "tech": "is a technology company building innovative solutions that make a real impact.",
    "finance": "is a financial services company committed to transparency and customer success.",
    "healthcare": "is a healthcare company dedicated to improving patient outcomes.",
    "education": "is an education company passionate about learning and growth.",
    "ecommerce": "is an e-commerce company that's redefining online shopping.",
    "consulting": "is a consulting firm that partners with clients to solve their toughest challenges.",
    "media": "is a media company creating content that informs and entertains.",
    "nonprofit": "is a nonprofit organization making a difference in our community.",
}

PREBUILT_INTROS = {
    "leadership": (
        "So, let me set the stage for this conversation. We're looking for a leader who can drive strategy "
        "and build high-performing teams. Today, I want to understand your leadership philosophy, how you've "
        "built and managed teams, and how you approach complex challenges. Ready to get started?"
    ),
    "startup": (
        "Alright, let me give you some context about what we're building. We're a startup that's moving fast "
        "and iterating quickly. This role is critical for us right now. Today, I'll ask you about your "
        "experiences and how you work. Ready to dive in?"
    ),
    "enterprise": (
        "Let me tell you about our organization and this opportunity. We're an established company with a "
        "strong market presence. For today's interview, I'll be asking you behavioral questions to understand "
        "your background and how you've handled various situations in your career. Does that sound good?"
    ),
    "tech": (
        "So, let me tell you a bit about us and the role. We're a technology company building products that "
        "solve real problems for our users. For today's conversation, I'm going to ask you several behavioral "
        "questions about your past experiences. Sound good?"
    ),
}

INTRO_CLOSERS = [
    "Sound good?",
    "Does that make sense?",
    "Ready to jump in?",
    "Shall we get started?",
]

RESPONSE_CLOSERS = [
    "Interesting!",
    "Great!",
    "Got it.",
    "I see.",
    "That makes sense.",
    "Understood.",
    "Thanks for sharing that.",
    "I appreciate that answer.",
    "Okay, great.",
    "That's helpful.",
    "Good example.",
]

QUESTION_TRANSITIONS = [
    "Alright, let's move on to the next question.",
    "Okay, let's talk about something else.",
    "Great. I have another question for you.",
    "Got it. Let me ask you about something different.",
    "Understood. Moving on.",
    "Perfect. Next question.",
    "Thanks. Let's shift gears.",
    "Good. Let's explore another area.",
]

LAST_QUESTION_LINE = "Those are all the questions I have for today."

WRAP_UPS = [
    "Alright {name}, those are all the questions I have for you today. I really enjoyed hearing about your "
    "experiences. Before we wrap up, do you have any questions for me about the role or the company?",
    "Great! That's everything I wanted to cover today. You shared some really interesting examples. "
    "Do you have any questions for me before we finish up?",
    "Perfect, {name}. We've covered all my questions. I appreciate you taking the time to provide such "
    "thoughtful answers. Is there anything you'd like to ask me about the position or our company?",
]

WRAP_UP_REPLIES = [
    "That's a great question, {name}. {company} values collaboration and innovation, and you'd be working "
    "with a talented team on challenging projects. Is there anything else you'd like to know?",
    "I'm glad you asked! {company} prides itself on an inclusive and engaging workplace where you can keep "
    "developing your skills. What else would you like to know?",
]

GOODBYES = [
    "Thanks so much for your time today, {name}. You'll get detailed feedback on your answers in just a "
    "moment. I wish you the very best with your job search. Take care!",
    "I really appreciate you taking the time to chat with me today, {name}. Your feedback report will be "
    "ready shortly. Best of luck out there!",
    "Great talking with you today, {name}. Your personalized feedback report will be ready in just a few "
    "seconds. Remember to keep practicing with the STAR method. Good luck with everything!",
]


def _rng(session_id: str, slot: str) -> random.Random:
    return random.Random(f"{session_id}:{slot}")


def _pick(options: Sequence[str], session_id: str, slot: str) -> str:
    return _rng(session_id, slot).choice(list(options))


def _name(session: Session) -> str:
    return session.candidate_name.strip() or "there"


def analyze_sentiment(text: str) -> Sentiment:
    lowered = text.lower()
    positive = sum(1 for word in POSITIVE_WORDS if word in lowered)
    negative = sum(1 for word in NEGATIVE_WORDS if word in lowered)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def welcome_line(session: Session) -> str:
    greeting = _pick(WELCOME_GREETINGS, session.id, "welcome").format(name=_name(session))
    return f"{greeting} {introduction(session.interviewer, session.company_name or None)}"


def _small_talk_template(session: Session) -> Dict[str, object]:
    return _rng(session.id, "small_talk").choice(SMALL_TALK)


def small_talk_opening(session: Session) -> str:
    return str(_small_talk_template(session)["opening"])


def small_talk_reply(session: Session, user_text: str) -> str:
    template = _small_talk_template(session)
    sentiment = analyze_sentiment(user_text)
    responses: Dict[str, List[str]] = template["responses"]  # type: ignore[assignment]
    reply = _pick(responses[sentiment], session.id, f"small_talk_reply:{sentiment}")
    return f"{reply} {template['transition']}"


def _extract_section(text: str, heads: str, tails: str, limit: int) -> Optional[str]:
    match = re.search(rf"(?:{heads})[:\n]+(.*?)(?:\n\n|{tails})", text, flags=re.IGNORECASE | re.DOTALL)
    if not match or not match.group(1).strip():
        return None
    return match.group(1).strip()[:limit]


def company_intro(session: Session) -> str:
    job_context = session.job_context or ""
    if not job_context:
        if detect_seniority(session.job_title) in ("lead", "executive"):
            return PREBUILT_INTROS["leadership"]
        kind = detect_company_type(None, session.company_name or None)
        return PREBUILT_INTROS.get(kind, PREBUILT_INTROS["tech"])

    company = session.company_name or "our company"
    title = session.job_title or "this position"
    opening = _pick(INTRO_OPENINGS, session.id, "intro_opening").format(company=company)

    about = _extract_section(job_context, "about us|about|who we are", "requirements|responsibilities", 300)
    if about:
        company_desc = f"{company} {about if about.endswith('.') else about + '.'}"
    else:
        industry = detect_industry(job_context)
        company_desc = f"{company} {INDUSTRY_DESCRIPTIONS.get(industry or 'tech', INDUSTRY_DESCRIPTIONS['tech'])}"

    duties = _extract_section(job_context, "responsibilities|what you'll do|you will", "requirements|qualifications", 250)
    role_desc = f"The role we're discussing today is {title}." + (f" {duties}" if duties else "")
    format_desc = "For today's conversation, I'll ask you a few questions about your past experiences."
    closer = _pick(INTRO_CLOSERS, session.id, "intro_closer")
    return " ".join([opening, company_desc, role_desc, format_desc, closer])


def question_line(session: Session) -> Optional[str]:
    if session.current_question_index >= session.total_questions:
        return None
    return session.questions[session.current_question_index].text


def answer_acknowledgement(session: Session, answered_index: int) -> str:
    """Closer for the answer at ``answered_index`` plus a lead-in to what follows."""

    closer = _pick(RESPONSE_CLOSERS, session.id, f"closer:{answered_index}")
    if answered_index >= session.total_questions - 1:
        return f"{closer} {LAST_QUESTION_LINE}"
    return f"{closer} {_pick(QUESTION_TRANSITIONS, session.id, f'transition:{answered_index}')}"


def wrap_up_line(session: Session) -> str:
    return _pick(WRAP_UPS, session.id, "wrap_up").format(name=_name(session))


def wrap_up_reply(session: Session, turn: int) -> str:
    return _pick(WRAP_UP_REPLIES, session.id, f"wrap_up_reply:{turn}").format(
        name=_name(session),
        company=session.company_name or "The company",
    )


def goodbye_line(session: Session) -> str:
    return _pick(GOODBYES, session.id, "goodbye").format(name=_name(session))


__all__ = [
    "LAST_QUESTION_LINE",
    "Sentiment",
    "analyze_sentiment",
    "answer_acknowledgement",
    "company_intro",
    "goodbye_line",
    "question_line",
    "small_talk_opening",
    "small_talk_reply",
    "welcome_line",
    "wrap_up_line",
    "wrap_up_reply",
]
