"""Tests for deterministic task scoring."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.services.task_scoring import (
    DEFAULT_EXPLANATION,
    RankingContext,
    build_shortlist,
    get_time_fit_band,
    is_time_reasonable,
    pick_recommendation,
    rank_tasks,
    score_task,
)

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _task(title: str = "Task", **fields):
    values = {
        "id": uuid4(),
        "title": title,
        "notes": None,
        "estimated_minutes": None,
        "priority": None,
        "urgency": None,
        "deadline_at": None,
    }
    values.update(fields)
    return SimpleNamespace(**values)


@pytest.mark.parametrize(
    "estimate,available,band",
    [
        (70, 60, "over"),
        (60, 60, "best"),
        (42, 60, "best"),
        (30, 60, "good"),
        (18, 60, "ok"),
        (10, 60, "short"),
        (10, 0, "ok"),
    ],
)
def test_time_fit_bands(estimate: int, available: int, band: str) -> None:
    assert get_time_fit_band(estimate, available) == band


def test_is_time_reasonable_window_and_default_estimate() -> None:
    assert is_time_reasonable(18, 60)
    assert is_time_reasonable(63, 60)
    assert not is_time_reasonable(64, 60)
    assert not is_time_reasonable(17, 60)
    # Missing estimate counts as 30 minutes.
    assert is_time_reasonable(None, 60)
    assert not is_time_reasonable(None, 200)


def test_score_task_adds_every_component() -> None:
    context = RankingContext(time_minutes=60, energy="low", urgency="high")
    task = _task(
        estimated_minutes=30,
        priority=4,
        urgency=5,
        deadline_at=NOW + timedelta(hours=10),
    )
    # deadline<24h 40 + priority 20 + urgency 25 + good band 20 + low energy quick 15 + urgency bonus 15
    assert score_task(task, context, NOW) == 135


def test_score_task_deadline_tiers() -> None:
    context = RankingContext(time_minutes=100, energy="med", urgency="low")

    def deadline_score(hours: float) -> int:
        task = _task(estimated_minutes=10, deadline_at=NOW + timedelta(hours=hours))
        return score_task(task, context, NOW) - score_task(_task(estimated_minutes=10), context, NOW)

    assert deadline_score(-1) == 50
    assert deadline_score(5) == 40
    assert deadline_score(30) == 30
    assert deadline_score(100) == 20
    assert deadline_score(500) == 10


def test_score_task_accepts_naive_deadlines_as_utc() -> None:
    context = RankingContext(time_minutes=60, energy="med", urgency="low")
    aware = _task(estimated_minutes=60, deadline_at=NOW + timedelta(hours=2))
    naive = _task(estimated_minutes=60, deadline_at=(NOW + timedelta(hours=2)).replace(tzinfo=None))
    assert score_task(aware, context, NOW) == score_task(naive, context, NOW)


def test_energy_rules_use_real_estimate_only() -> None:
    low = RankingContext(time_minutes=60, energy="low", urgency="low")
    high = RankingContext(time_minutes=90, energy="high", urgency="low")
    assert score_task(_task(estimated_minutes=90), low, NOW) == -15 - 5
    assert score_task(_task(estimated_minutes=60), high, NOW) == 20 + 10
    # Unknown estimate gets banding but no energy bonus.
    assert score_task(_task(), low, NOW) == 20


def test_rank_tasks_prefers_time_reasonable_and_is_stable() -> None:
    context = RankingContext(time_minutes=60, energy="med", urgency="low")
    fits_a = _task("fits a", estimated_minutes=45)
    fits_b = _task("fits b", estimated_minutes=45)
    too_long = _task("too long", estimated_minutes=600, priority=5)

    ranked = rank_tasks([fits_a, too_long, fits_b], context, NOW)

    assert [item.title for item in ranked] == ["fits a", "fits b"]


def test_rank_tasks_falls_back_to_all_tasks_when_none_fit() -> None:
    context = RankingContext(time_minutes=15, energy="med", urgency="low")
    ranked = rank_tasks([_task("long", estimated_minutes=120), _task("longer", estimated_minutes=240)], context, NOW)
    assert {item.title for item in ranked} == {"long", "longer"}


def test_build_shortlist_truncates_notes_and_formats_deadline() -> None:
    context = RankingContext(time_minutes=60, energy="med", urgency="low")
    task = _task(
        "write report",
        notes="x" * 200,
        estimated_minutes=50,
        deadline_at=NOW + timedelta(days=2),
    )

    [entry] = build_shortlist([task], context, now=NOW)

    assert entry["id"] == str(task.id)
    assert entry["notes"] == "x" * 150 + "…"
    assert entry["deadline_at"] == (NOW + timedelta(days=2)).isoformat()
    assert entry["score"] == score_task(task, context, NOW)


def test_build_shortlist_exclusion_rules() -> None:
    context = RankingContext(time_minutes=60, energy="med", urgency="low")
    only = _task("only", estimated_minutes=45)
    other = _task("other", estimated_minutes=45)

    assert [e["title"] for e in build_shortlist([only], context, exclude_task_id=only.id, now=NOW)] == ["only"]
    assert [e["title"] for e in build_shortlist([only, other], context, exclude_task_id=only.id, now=NOW)] == [
        "other"
    ]


def test_build_shortlist_respects_size() -> None:
    context = RankingContext(time_minutes=60, energy="med", urgency="low")
    tasks = [_task(f"t{i}", estimated_minutes=45) for i in range(40)]
    assert len(build_shortlist(tasks, context, now=NOW)) == 30
    assert len(build_shortlist(tasks, context, n=5, now=NOW)) == 5


def test_pick_recommendation_prefers_best_band_over_raw_score() -> None:
    context = RankingContext(time_minutes=60, energy="med", urgency="low")
    good_but_urgent = _task("urgent", estimated_minutes=30, priority=5, urgency=5)
    best_fit = _task("best", estimated_minutes=55)

    pick = pick_recommendation([good_but_urgent, best_fit], context, now=NOW)

    assert pick is not None
    assert pick.task_title == "best"
    assert pick.band == "best"
    assert pick.confidence == "med"
    assert pick.explanation == "Recommended because it's fits your available time."


def test_pick_recommendation_explanation_reasons() -> None:
    context = RankingContext(time_minutes=30, energy="low", urgency="low")
    task = _task("pay bill", estimated_minutes=25, priority=4, deadline_at=NOW + timedelta(hours=3))

    pick = pick_recommendation([task], context, now=NOW)

    assert pick.explanation == (
        "Recommended because it's due soon, high priority, fits your available time, quick task for low energy."
    )


def test_pick_recommendation_default_explanation_and_empty() -> None:
    context = RankingContext(time_minutes=120, energy="med", urgency="low")
    pick = pick_recommendation([_task("small", estimated_minutes=40)], context, now=NOW)
    assert pick.explanation == DEFAULT_EXPLANATION
    assert pick_recommendation([], context, now=NOW) is None
