from __future__ import annotations

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def conflict_insert(db: Session, model):
    """Return an INSERT for ``model`` that supports ON CONFLICT clauses.

    Both supported backends speak the same ``on_conflict_do_nothing`` /
    ``on_conflict_do_update`` API, so callers stay dialect-agnostic.
    """
    dialect = db.get_bind().dialect.name
    try:
        factory = _INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"ON CONFLICT upserts are not supported on {dialect}")
    return factory(model)
