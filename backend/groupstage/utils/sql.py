"""
COUNT queries for impact reports.

session.exec(select(func.count(...))).one() comes back as a bare int or as a
1-tuple Row depending on the SQLModel/SQLAlchemy version.
"""
from typing import Any

from sqlalchemy import func
from sqlmodel import Session, select


def scalar_int(x: Any) -> int:
    try:
        return int(x[0])
    except (TypeError, IndexError):
        return int(x)


def count_rows(session: Session, column: Any, *criteria: Any) -> int:
    """COUNT(column) over the rows matching every criterion."""
    return scalar_int(session.exec(select(func.count(column)).where(*criteria)).one())
