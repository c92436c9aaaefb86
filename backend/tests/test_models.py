from app.db.base import Base
from app.db import models  # noqa: F401  ensure models are loaded


def test_metadata_contains_core_tables() -> None:
    table_names = set(Base.metadata.tables.keys())
    expected = {
        "users",
        "goals",
        "tasks",
        "user_interests",
        "generated_suggestions",
        "recommendation_events",
        "llm_budgets",
    }

    assert expected.issubset(table_names)


def test_llm_budget_is_keyed_by_user_and_day() -> None:
    table = Base.metadata.tables["llm_budgets"]
    assert [column.name for column in table.primary_key.columns] == ["user_id", "day"]


def test_decisions_default_to_pending() -> None:
    for name in ("generated_suggestions", "recommendation_events"):
        column = Base.metadata.tables[name].c.decision
        assert "pending" in str(column.server_default.arg)
