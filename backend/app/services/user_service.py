"""User rows keyed by the id the auth gateway forwards."""
from __future__ import annotations

import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from app.core.auth import Principal
from app.db.models.user import User

logger = logging.getLogger(__name__)


def get_or_create_user(db: Session, principal: Principal) -> User:
    """Return the caller's user row, inserting it on first contact.

    Concurrent first requests both run an ``INSERT .. ON CONFLICT DO NOTHING``
    so neither fails and the surrounding transaction stays usable.
    """
    user = db.get(User, principal.user_id)
    if user is not None:
        return user

    dialect = db.get_bind().dialect.name
    insert = pg_insert if dialect == "postgresql" else sqlite_insert
    db.execute(insert(User).values(id=principal.user_id).on_conflict_do_nothing(index_elements=[User.id]))
    logger.info("Registered user on first request")
    return db.get(User, principal.user_id, populate_existing=True)
