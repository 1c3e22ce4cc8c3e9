"""Pydantic schemas for classification entries and synchronization results.

Entries are deliberately permissive: risk_level accepts whatever the caller
submitted (int, float, numeric string, None) and normalization decides what
counts as a usable risk grade.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ClassificationEntry(BaseModel):
    """One submitted classification for an establishment.

    Accepts risk_level or the riskLevel key used by the web client.
    """

    model_config = ConfigDict(populate_by_name=True)

    code: Optional[str] = None
    title: Optional[str] = None
    risk_level: Optional[Union[int, float, str]] = Field(None, alias="riskLevel")


class ClassificationResponse(BaseModel):
    """Catalog entry as exposed across the service boundary (no surrogate id)."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    title: str
    intrinsic_risk: Optional[int] = None
    provenance: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClassificationLinkResponse(BaseModel):
    """A current establishment link with its catalog details."""

    code: str
    title: str
    assigned_risk: Optional[int] = None
    intrinsic_risk: Optional[int] = None


class EstablishmentRiskSummary(BaseModel):
    """Result of a synchronization: the establishment's derived fields."""

    establishment_id: int
    principal_classification: Optional[str] = None
    aggregate_risk: Optional[int] = None
    classification_count: int = Field(0, ge=0)
