"""Classification catalog: get-or-create resolution and catalog maintenance.

resolve_classification is the only path that creates catalog rows during a
synchronization. Creation relies on the unique constraint on `code`: the
insert runs in a SAVEPOINT, and an IntegrityError means another transaction
created the same code first, so the row is re-fetched instead.

All functions take db: Session as first arg.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from safeguard.classification.codes import format_classification_code, normalize_risk
from safeguard.classification.models import ClassificationCode
from safeguard.config import get_settings
from safeguard.exceptions import (
    ClassificationConflictError,
    ClassificationNotFoundError,
    InvalidInputError,
)

logger = logging.getLogger(__name__)


def _require_code(code: Optional[str]) -> str:
    normalized = format_classification_code(code)
    if not normalized:
        raise InvalidInputError(
            message="Classification code is required",
            detail=f"code={code!r}",
        )
    return normalized


def find_classification(db: Session, code: str) -> Optional[ClassificationCode]:
    """Look up a catalog entry by its natural key, or None."""
    return (
        db.query(ClassificationCode)
        .filter(ClassificationCode.code == code)
        .first()
    )


def get_classification(db: Session, code: str) -> ClassificationCode:
    """Get a catalog entry by code. Raises ClassificationNotFoundError if absent."""
    normalized = _require_code(code)
    classification = find_classification(db, normalized)
    if classification is None:
        raise ClassificationNotFoundError(
            message=f"Classification code '{normalized}' not found",
            detail=f"code={normalized}",
        )
    return classification


def resolve_classification(
    db: Session,
    code: str,
    title: Optional[str] = None,
    provenance: Optional[str] = None,
) -> ClassificationCode:
    """Return the catalog entry for code, creating it if absent.

    An existing entry is returned unchanged (title is not overwritten).
    A new entry uses the code itself as placeholder title when none is given.
    Does not commit: the caller's transaction decides whether new rows persist.

    Raises:
        InvalidInputError: if code is empty or blank.
        ClassificationConflictError: if the code can neither be inserted nor
            re-fetched within conflict_retry_limit attempts.
    """
    normalized = _require_code(code)
    settings = get_settings()
    title = (title or "").strip() or normalized

    for attempt in range(1, settings.conflict_retry_limit + 1):
        existing = find_classification(db, normalized)
        if existing is not None:
            return existing

        classification = ClassificationCode(
            code=normalized,
            title=title,
            provenance=provenance or settings.default_provenance,
        )
        try:
            with db.begin_nested():
                db.add(classification)
        except IntegrityError:
            logger.info(
                "Classification %s created concurrently (attempt %d/%d), re-fetching",
                normalized,
                attempt,
                settings.conflict_retry_limit,
            )
            continue

        logger.info("Created classification %s (title=%r)", normalized, title)
        return classification

    raise ClassificationConflictError(
        message=f"Could not resolve classification code '{normalized}'",
        detail=(
            f"code={normalized}, attempts={settings.conflict_retry_limit}: "
            "insert kept violating the unique constraint but no row was found"
        ),
    )


def upsert_classification(
    db: Session,
    code: str,
    title: str,
    intrinsic_risk: Any = None,
    provenance: Optional[str] = None,
) -> ClassificationCode:
    """Create or update a catalog entry in place and commit.

    Catalog maintenance path: corrects placeholder titles and records the
    intrinsic risk grade and provenance. Never touches establishment links.

    Raises:
        InvalidInputError: blank code or title, or a risk outside the grade range.
    """
    settings = get_settings()
    normalized = _require_code(code)
    clean_title = (title or "").strip()
    if not clean_title:
        raise InvalidInputError(
            message="Classification title is required",
            detail=f"code={normalized}",
        )

    risk = normalize_risk(intrinsic_risk, settings.risk_min, settings.risk_max)
    if intrinsic_risk is not None and risk is None:
        raise InvalidInputError(
            message=f"Invalid risk grade for classification '{normalized}'",
            detail=(
                f"intrinsic_risk={intrinsic_risk!r}, "
                f"expected an integer in {settings.risk_min}..{settings.risk_max}"
            ),
        )

    classification = resolve_classification(db, normalized, clean_title, provenance)
    classification.title = clean_title
    classification.intrinsic_risk = risk
    if provenance:
        classification.provenance = provenance

    db.commit()
    db.refresh(classification)
    logger.info(
        "Upserted classification %s (intrinsic_risk=%s)", normalized, risk
    )
    return classification
