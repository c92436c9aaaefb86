"""Tests for the generated suggestion flow."""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import List
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.auth import Principal
from app.db.base import Base
from app.db import models  # noqa: F401  ensure models are loaded
from app.db.models.generated_suggestion import GeneratedSuggestion
from app.db.models.task import Task
from app.db.models.user import User
from app.services import suggestion_generator
from app.services.llm.base import FailureKind, GenerationResult, TextGenerator
from app.services.suggestion_generator import (
    FALLBACK_IDEA,
    NO_NEW_IDEA_MESSAGE,
    UNAVAILABLE_MESSAGE,
    GenerationContext,
    build_generate_prompt,
    get_generated_suggestion,
    suggest_next_action,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
CONTEXT = GenerationContext(time_minutes=30, energy="med", uniqueness="related")


class FakeGenerator(TextGenerator):
    model_name = "fake-model"

    def __init__(self, results: List[GenerationResult]):
        self.results = list(results)
        self.prompts: List[str] = []

    def generate(self, prompt: str, max_tokens: int) -> GenerationResult:
        self.prompts.append(prompt)
        return self.results.pop(0)


def _envelope(title: str, next_action: str, minutes: int = 20, **extra) -> GenerationResult:
    task = {
        "title": title,
        "nextAction": next_action,
        "estimatedMinutes": minutes,
        "tags": extra.pop("tags", ["focus"]),
        "reasoning": "It fits the window.",
        "confidence": "med",
    }
    payload = {"type": "generated", "generatedTask": task, **extra}
    return GenerationResult.success(json.dumps(payload))


NOVEL = _envelope("Write a haiku about spring", "Open a notes app and draft three lines")
DUPLICATE = _envelope("Clean the garage", "Clean the garage")


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def principal(db_session) -> Principal:
    user = User(id=uuid4())
    db_session.add(user)
    db_session.commit()
    db_session.add(Task(user_id=user.id, title="Clean the garage", estimated_minutes=60, created_at=NOW))
    db_session.commit()
    return Principal(user_id=user.id)


def _stored(db_session) -> List[GeneratedSuggestion]:
    return db_session.query(GeneratedSuggestion).all()


def test_novel_suggestion_is_stored_pending(db_session, principal) -> None:
    generator = FakeGenerator([NOVEL])

    outcome = suggest_next_action(db_session, principal, CONTEXT, generator, now=NOW)

    assert outcome.status == "accepted"
    assert outcome.attempts == 1
    assert outcome.remaining_today == 4
    [row] = _stored(db_session)
    assert row.id == outcome.suggestion.id
    assert row.decision == "pending"
    assert row.model == "fake-model"
    assert row.context_time_minutes == 30
    assert row.context_uniqueness == "related"
    assert len(row.shortlist_hash) == 16
    assert row.source_features == ["interests", "recent_behavior", "shortlist"]
    assert "available time = 30 minutes" in generator.prompts[0]
    assert "MUST be clearly different" not in generator.prompts[0]


def test_envelope_model_name_wins(db_session, principal) -> None:
    generator = FakeGenerator([_envelope("Write a haiku", "Open a notes app", model="gpt-x")])
    outcome = suggest_next_action(db_session, principal, CONTEXT, generator, now=NOW)
    assert outcome.suggestion.model == "gpt-x"


@pytest.mark.parametrize(
    "failure",
    [
        GenerationResult.failed(FailureKind.MISSING_CREDENTIALS),
        GenerationResult.failed(FailureKind.TIMEOUT),
        GenerationResult.success("definitely not json"),
        GenerationResult.success(json.dumps({"type": "generated", "generatedTask": {"title": "x"}})),
    ],
)
def test_first_attempt_failure_returns_unavailable_fallback(db_session, principal, failure) -> None:
    generator = FakeGenerator([failure])

    outcome = suggest_next_action(db_session, principal, CONTEXT, generator, now=NOW)

    assert outcome.status == "fallback"
    assert outcome.message == UNAVAILABLE_MESSAGE
    assert outcome.fallback_idea == FALLBACK_IDEA
    assert outcome.failure is not None
    assert len(generator.prompts) == 1
    assert _stored(db_session) == []


def test_duplicate_then_novel_retries_with_avoid_list(db_session, principal) -> None:
    generator = FakeGenerator([DUPLICATE, NOVEL])

    outcome = suggest_next_action(db_session, principal, CONTEXT, generator, now=NOW)

    assert outcome.status == "accepted"
    assert outcome.attempts == 2
    assert "avoid_list" in outcome.suggestion.source_features
    assert "MUST be clearly different" in generator.prompts[1]
    assert "- Clean the garage" in generator.prompts[1]
    [row] = _stored(db_session)
    assert row.title == "Write a haiku about spring"


def test_duplicate_twice_gives_no_new_idea(db_session, principal) -> None:
    generator = FakeGenerator([DUPLICATE, DUPLICATE])

    outcome = suggest_next_action(db_session, principal, CONTEXT, generator, now=NOW)

    assert outcome.status == "fallback"
    assert outcome.message == NO_NEW_IDEA_MESSAGE
    assert outcome.fallback_idea == ""
    assert len(generator.prompts) == 2
    assert _stored(db_session) == []


def test_duplicate_then_failure_gives_no_new_idea(db_session, principal) -> None:
    generator = FakeGenerator([DUPLICATE, GenerationResult.failed(FailureKind.NETWORK)])

    outcome = suggest_next_action(db_session, principal, CONTEXT, generator, now=NOW)

    assert outcome.message == NO_NEW_IDEA_MESSAGE
    assert outcome.failure is FailureKind.NETWORK
    assert _stored(db_session) == []


def test_recent_suggestions_count_as_references(db_session, principal) -> None:
    first = FakeGenerator([NOVEL])
    suggest_next_action(db_session, principal, CONTEXT, first, now=NOW)

    second = FakeGenerator([NOVEL, NOVEL])
    outcome = suggest_next_action(db_session, principal, CONTEXT, second, now=NOW + timedelta(minutes=5))

    assert outcome.message == NO_NEW_IDEA_MESSAGE
    assert "- Open a notes app and draft three lines" in second.prompts[1]


def test_daily_limit_skips_the_model(db_session, principal, monkeypatch) -> None:
    monkeypatch.setattr(suggestion_generator.settings, "generated_daily_cap", 1)
    suggest_next_action(db_session, principal, CONTEXT, FakeGenerator([NOVEL]), now=NOW)

    generator = FakeGenerator([])
    outcome = suggest_next_action(db_session, principal, CONTEXT, generator, now=NOW + timedelta(hours=1))

    assert outcome.status == "daily_limit"
    assert outcome.message == "You've reached your 1 AI suggestions for today. Try again tomorrow."
    assert generator.prompts == []


def test_candidate_fields_are_normalized() -> None:
    long_action = "Step " * 40
    generator = FakeGenerator([_envelope("Tidy desk", long_action, minutes=90, tags=["a", "b", "c", "d"])])

    attempt = get_generated_suggestion(generator, CONTEXT, "interests: [home]", "no history")

    assert attempt.ok
    assert len(attempt.draft.next_action) == 120
    assert attempt.draft.tags == ["a", "b", "c"]
    assert attempt.draft.estimated_minutes == 30


def test_non_positive_estimate_is_schema_invalid() -> None:
    generator = FakeGenerator([_envelope("Tidy desk", "Clear one shelf", minutes=0)])
    attempt = get_generated_suggestion(generator, CONTEXT, "", "")
    assert attempt.failure is FailureKind.SCHEMA_INVALID


def test_prompt_mentions_idea_hint_only_when_present() -> None:
    with_hint = GenerationContext(time_minutes=45, energy="low", uniqueness="novel", idea_hint="  music ")
    blank_hint = GenerationContext(time_minutes=45, energy="low", uniqueness="novel", idea_hint="   ")

    assert 'User preference hint (soft constraint): "music"' in build_generate_prompt(with_hint, "", "")
    assert "User preference hint" not in build_generate_prompt(blank_hint, "", "")
    assert "- Practice scales" in build_generate_prompt(with_hint, "", "", shortlist_titles=["Practice scales"])


def _stored_row(user_id, title: str, created_at: datetime) -> GeneratedSuggestion:
    return GeneratedSuggestion(
        user_id=user_id,
        context_time_minutes=30,
        context_energy="med",
        context_uniqueness="related",
        title=title,
        next_action=f"Start on {title.lower()}",
        estimated_minutes=20,
        tags=[],
        reasoning="Fits.",
        confidence="med",
        model="test",
        source_features=[],
        shortlist_hash="abc",
        created_at=created_at,
    )


class CompetingGenerator(FakeGenerator):
    """Commits another suggestion for the same user while the model call is in flight."""

    def __init__(self, results: List[GenerationResult], db_session, user_id):
        super().__init__(results)
        self.db_session = db_session
        self.user_id = user_id

    def generate(self, prompt: str, max_tokens: int) -> GenerationResult:
        self.db_session.add(_stored_row(self.user_id, "Bake bread", NOW - timedelta(minutes=1)))
        self.db_session.commit()
        return super().generate(prompt, max_tokens)


@pytest.mark.parametrize(
    "title,next_action",
    [("   ", "   "), ("", "Open a notes app"), ("Write a haiku", " \n\t ")],
)
def test_blank_title_or_action_is_schema_invalid(title: str, next_action: str) -> None:
    generator = FakeGenerator([_envelope(title, next_action)])
    attempt = get_generated_suggestion(generator, CONTEXT, "", "")
    assert attempt.failure is FailureKind.SCHEMA_INVALID


def test_blank_reply_is_never_stored(db_session, principal) -> None:
    generator = FakeGenerator([_envelope("   ", "   ")])

    outcome = suggest_next_action(db_session, principal, CONTEXT, generator, now=NOW)

    assert outcome.status == "fallback"
    assert outcome.message == UNAVAILABLE_MESSAGE
    assert outcome.failure is FailureKind.SCHEMA_INVALID
    assert _stored(db_session) == []


@pytest.mark.parametrize("minutes,expected", [(20.0, 20), (20.5, None), ("20", None), (True, None)])
def test_estimate_must_be_a_whole_number(minutes, expected) -> None:
    generator = FakeGenerator([_envelope("Tidy desk", "Clear one shelf", minutes=minutes)])

    attempt = get_generated_suggestion(generator, CONTEXT, "", "")

    if expected is None:
        assert attempt.failure is FailureKind.SCHEMA_INVALID
    else:
        assert attempt.ok
        assert attempt.draft.estimated_minutes == expected


def test_quota_filled_during_model_call_is_not_exceeded(db_session, principal, monkeypatch) -> None:
    monkeypatch.setattr(suggestion_generator.settings, "generated_daily_cap", 5)
    for index in range(4):
        db_session.add(_stored_row(principal.user_id, f"Earlier idea {index}", NOW - timedelta(hours=index + 1)))
    db_session.commit()
    generator = CompetingGenerator([NOVEL], db_session, principal.user_id)

    outcome = suggest_next_action(db_session, principal, CONTEXT, generator, now=NOW)

    assert outcome.status == "daily_limit"
    assert outcome.suggestion is None
    assert len(generator.prompts) == 1
    assert len(_stored(db_session)) == 5
    assert all(row.title != "Write a haiku about spring" for row in _stored(db_session))


def test_remaining_today_counts_rows_committed_by_other_requests(db_session, principal, monkeypatch) -> None:
    monkeypatch.setattr(suggestion_generator.settings, "generated_daily_cap", 5)
    generator = CompetingGenerator([NOVEL], db_session, principal.user_id)

    outcome = suggest_next_action(db_session, principal, CONTEXT, generator, now=NOW)

    assert outcome.status == "accepted"
    assert outcome.remaining_today == 3
    assert len(_stored(db_session)) == 2
