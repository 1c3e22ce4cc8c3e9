"""ClassificationCode and EstablishmentClassification ORM models.

The catalog is keyed by the natural `code`; the surrogate `id` never leaves
the service layer. Links are owned by the synchronization engine and are only
ever replaced as a set, never edited in place.
"""

from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from safeguard.db.base import Base, TimestampMixin


class ClassificationCode(TimestampMixin, Base):
    """Catalog entry for an economic-activity/hazard code (e.g. CNAE 0111-3/01).

    updated_at doubles as the catalog's last-updated timestamp.
    """

    __tablename__ = "classification_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    intrinsic_risk: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    provenance: Mapped[str] = mapped_column(String, nullable=False)

    links: Mapped[list["EstablishmentClassification"]] = relationship(
        "EstablishmentClassification", back_populates="classification"
    )


class EstablishmentClassification(Base):
    """Link between an establishment and a catalog code.

    assigned_risk may override the code's intrinsic_risk for this establishment.
    """

    __tablename__ = "establishment_classifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    establishment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("establishments.id"), nullable=False
    )
    classification_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("classification_codes.id"), nullable=False
    )
    assigned_risk: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    classification: Mapped["ClassificationCode"] = relationship(
        "ClassificationCode", back_populates="links"
    )

    __table_args__ = (
        UniqueConstraint(
            "establishment_id",
            "classification_id",
            name="uq_establishment_classification",
        ),
        Index("ix_establishment_classifications_establishment", "establishment_id"),
    )
