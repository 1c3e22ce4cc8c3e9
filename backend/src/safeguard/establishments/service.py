"""Establishment accessors used by the classification engine.

All functions take db: Session as first arg.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from safeguard.establishments.models import Establishment
from safeguard.exceptions import EstablishmentNotFoundError, InvalidInputError


def create_establishment(db: Session, name: str) -> Establishment:
    """Create an establishment with no classifications."""
    if not name or not name.strip():
        raise InvalidInputError(
            message="Establishment name is required",
            detail=f"name={name!r}",
        )
    establishment = Establishment(name=name.strip())
    db.add(establishment)
    db.commit()
    db.refresh(establishment)
    return establishment


def get_establishment(
    db: Session, establishment_id: int, for_update: bool = False
) -> Establishment:
    """Get an establishment by ID. Raises EstablishmentNotFoundError if not found.

    With for_update=True the row is locked (SELECT ... FOR UPDATE) until the
    surrounding transaction ends. SQLite ignores the clause and relies on
    BEGIN IMMEDIATE instead.
    """
    query = db.query(Establishment).filter(Establishment.id == establishment_id)
    if for_update:
        query = query.with_for_update()
    establishment = query.first()
    if establishment is None:
        raise EstablishmentNotFoundError(
            message=f"Establishment with id {establishment_id} not found",
            detail=f"establishment_id={establishment_id}",
        )
    return establishment
