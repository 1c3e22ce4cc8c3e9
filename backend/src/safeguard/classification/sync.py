"""Establishment classification synchronization.

Replaces an establishment's classification links with a submitted set and
recomputes the two derived fields (principal_classification, aggregate_risk)
in the same transaction. Links are never mutated anywhere else, so the
derived fields always match the current link set.

Duplicate codes in one submission collapse into a single link: the code keeps
the position of its first occurrence, the highest submitted risk, and the
first non-blank title.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import structlog
from pydantic import ValidationError
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from safeguard.classification.catalog import resolve_classification
from safeguard.classification.codes import format_classification_code, normalize_risk
from safeguard.classification.models import ClassificationCode, EstablishmentClassification
from safeguard.classification.principal import RiskPair, select_principal
from safeguard.classification.schemas import (
    ClassificationEntry,
    ClassificationLinkResponse,
    EstablishmentRiskSummary,
)
from safeguard.config import Settings, get_settings
from safeguard.establishments.service import get_establishment
from safeguard.exceptions import (
    InvalidInputError,
    SafeguardError,
    SyncTimeoutError,
    TransactionFailureError,
)

logger = structlog.get_logger(__name__)

EntryInput = Union[ClassificationEntry, Mapping[str, Any]]


@dataclass
class _PendingLink:
    code: str
    title: Optional[str]
    risk_level: Optional[int]


def _require_establishment_id(establishment_id: Any) -> None:
    if establishment_id is None or (
        isinstance(establishment_id, str) and not establishment_id.strip()
    ):
        raise InvalidInputError(
            message="Establishment id is required",
            detail=f"establishment_id={establishment_id!r}",
        )


def _check_deadline(deadline: Optional[float], establishment_id: Any) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise SyncTimeoutError(
            detail=f"establishment_id={establishment_id}: deadline exceeded before commit",
        )


def normalize_entries(
    entries: Optional[Iterable[EntryInput]], settings: Optional[Settings] = None
) -> list[_PendingLink]:
    """Trim and format codes, drop blank ones, coerce risks, collapse duplicates."""
    settings = settings or get_settings()
    merged: dict[str, _PendingLink] = {}

    for raw in entries or []:
        try:
            entry = (
                raw
                if isinstance(raw, ClassificationEntry)
                else ClassificationEntry.model_validate(raw)
            )
        except ValidationError as e:
            raise InvalidInputError(
                message="Malformed classification entry",
                detail=f"entry={raw!r}: {e}",
            ) from e

        code = format_classification_code(entry.code)
        if not code:
            continue
        title = (entry.title or "").strip() or None
        risk = normalize_risk(entry.risk_level)

        current = merged.get(code)
        if current is None:
            merged[code] = _PendingLink(code=code, title=title, risk_level=risk)
            continue
        if current.title is None:
            current.title = title
        if risk is not None and (current.risk_level is None or risk > current.risk_level):
            current.risk_level = risk

    return list(merged.values())


def _delete_links(db: Session, establishment_id: int) -> None:
    db.execute(
        delete(EstablishmentClassification).where(
            EstablishmentClassification.establishment_id == establishment_id
        ).execution_options(synchronize_session="fetch")
    )


def _insert_links(
    db: Session,
    establishment_id: int,
    resolved: Sequence[tuple[ClassificationCode, Optional[int]]],
) -> None:
    db.add_all(
        [
            EstablishmentClassification(
                establishment_id=establishment_id,
                classification_id=classification.id,
                assigned_risk=risk,
            )
            for classification, risk in resolved
        ]
    )
    db.flush()


def apply_classifications_in_tx(
    db: Session,
    establishment_id: int,
    entries: Optional[Iterable[EntryInput]],
    deadline: Optional[float] = None,
) -> EstablishmentRiskSummary:
    """Replace links and update derived fields inside the caller's transaction.

    Does not commit or roll back. Use this when the establishment is being
    created or edited in the same unit of work; otherwise call
    synchronize_classifications.

    Raises:
        InvalidInputError: blank establishment id or malformed entry.
        EstablishmentNotFoundError: establishment does not exist.
        ClassificationConflictError: catalog get-or-create kept conflicting.
        TransactionFailureError: a database error occurred during the replace.
    """
    _require_establishment_id(establishment_id)
    settings = get_settings()
    pending = normalize_entries(entries, settings)

    try:
        establishment = get_establishment(db, establishment_id, for_update=True)

        resolved: list[tuple[ClassificationCode, Optional[int]]] = []
        for item in pending:
            _check_deadline(deadline, establishment_id)
            classification = resolve_classification(db, item.code, item.title)
            risk = item.risk_level
            if risk is None and settings.inherit_catalog_risk:
                risk = normalize_risk(
                    classification.intrinsic_risk, settings.risk_min, settings.risk_max
                )
            resolved.append((classification, risk))

        selection = select_principal(
            [RiskPair(classification.code, risk) for classification, risk in resolved]
        )
        _check_deadline(deadline, establishment_id)

        _delete_links(db, establishment.id)
        if resolved:
            _insert_links(db, establishment.id, resolved)

        establishment.principal_classification = selection.principal
        establishment.aggregate_risk = selection.aggregate_risk
        db.flush()
    except SQLAlchemyError as e:
        raise TransactionFailureError(
            detail=(
                f"establishment_id={establishment_id}, "
                f"codes={[item.code for item in pending]}: {e}"
            ),
        ) from e

    return EstablishmentRiskSummary(
        establishment_id=establishment.id,
        principal_classification=selection.principal,
        aggregate_risk=selection.aggregate_risk,
        classification_count=len(resolved),
    )


def synchronize_classifications(
    db: Session,
    establishment_id: int,
    entries: Optional[Iterable[EntryInput]],
    timeout: Optional[float] = None,
) -> EstablishmentRiskSummary:
    """Replace an establishment's classifications and commit, all or nothing.

    Resolves every submitted code in the catalog (creating missing ones),
    picks the principal code and aggregate risk, then deletes the old links,
    inserts the new ones and updates the establishment in one transaction.
    On any failure the transaction is rolled back, including catalog rows
    created by this call, and the establishment keeps its prior state.

    Args:
        db: Session; its current transaction is committed on success.
        establishment_id: Establishment to synchronize.
        entries: ClassificationEntry objects or dicts with code/title/risk_level.
        timeout: Optional deadline in seconds for the whole call.

    Returns:
        EstablishmentRiskSummary with the new derived fields.

    Raises:
        InvalidInputError, EstablishmentNotFoundError,
        ClassificationConflictError, TransactionFailureError (SyncTimeoutError
        on deadline expiry).
    """
    deadline = time.monotonic() + timeout if timeout is not None else None

    try:
        summary = apply_classifications_in_tx(db, establishment_id, entries, deadline)
        _check_deadline(deadline, establishment_id)
        db.commit()
    except SafeguardError as e:
        db.rollback()
        logger.warning(
            "classification_sync_failed",
            establishment_id=establishment_id,
            error=type(e).__name__,
            detail=e.detail,
        )
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "classification_sync_commit_failed",
            establishment_id=establishment_id,
            error=str(e),
        )
        raise TransactionFailureError(
            message="Classification synchronization could not commit",
            detail=f"establishment_id={establishment_id}: {e}",
        ) from e

    logger.info(
        "classification_sync_complete",
        establishment_id=summary.establishment_id,
        principal_classification=summary.principal_classification,
        aggregate_risk=summary.aggregate_risk,
        links=summary.classification_count,
    )
    return summary


def list_classifications(
    db: Session, establishment_id: int
) -> list[ClassificationLinkResponse]:
    """Current classification links of an establishment, ordered by code."""
    _require_establishment_id(establishment_id)
    establishment = get_establishment(db, establishment_id)

    rows = (
        db.query(EstablishmentClassification, ClassificationCode)
        .join(
            ClassificationCode,
            EstablishmentClassification.classification_id == ClassificationCode.id,
        )
        .filter(EstablishmentClassification.establishment_id == establishment.id)
        .order_by(ClassificationCode.code.asc())
        .all()
    )
    return [
        ClassificationLinkResponse(
            code=classification.code,
            title=classification.title,
            assigned_risk=link.assigned_risk,
            intrinsic_risk=classification.intrinsic_risk,
        )
        for link, classification in rows
    ]
