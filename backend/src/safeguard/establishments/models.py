"""Establishment ORM model.

Only the fields the classification engine needs are mapped here. The two
derived fields are written exclusively by safeguard.classification.sync and
always mirror the establishment's current classification links.
"""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from safeguard.db.base import Base, TimestampMixin


class Establishment(TimestampMixin, Base):
    """A company site carrying derived hazard classification attributes."""

    __tablename__ = "establishments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)

    # Derived from classification links -- never edit directly
    principal_classification: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("classification_codes.code"), nullable=True
    )
    aggregate_risk: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
