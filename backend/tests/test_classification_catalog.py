"""Tests for the classification catalog: get-or-create, conflict handling,
and catalog maintenance."""

from unittest.mock import patch

import pytest

from safeguard.classification import catalog
from safeguard.classification.catalog import (
    find_classification,
    get_classification,
    resolve_classification,
    upsert_classification,
)
from safeguard.classification.models import ClassificationCode
from safeguard.classification.schemas import ClassificationResponse
from safeguard.exceptions import (
    ClassificationConflictError,
    ClassificationNotFoundError,
    InvalidInputError,
)


def _catalog_count(db_session, code: str) -> int:
    return db_session.query(ClassificationCode).filter(ClassificationCode.code == code).count()


# =============================================================================
# Resolution
# =============================================================================


class TestResolveClassification:
    def test_creates_missing_code_with_placeholder_title(self, db_session):
        result = resolve_classification(db_session, "6201-5/01")
        assert result.id is not None
        assert result.code == "6201-5/01"
        assert result.title == "6201-5/01"
        assert result.provenance == "establishment-sync"
        assert result.intrinsic_risk is None

    def test_creates_with_given_title(self, db_session):
        result = resolve_classification(db_session, "0111-3/01", "Cultivo de arroz")
        assert result.title == "Cultivo de arroz"

    def test_existing_code_returned_unchanged(self, db_session):
        upsert_classification(db_session, "0111-3/01", "Cultivo de arroz", 3)
        result = resolve_classification(db_session, "0111-3/01", "Something else")
        assert result.title == "Cultivo de arroz"
        assert result.intrinsic_risk == 3
        assert _catalog_count(db_session, "0111-3/01") == 1

    def test_bare_digits_resolve_to_formatted_code(self, db_session):
        first = resolve_classification(db_session, "0111301")
        second = resolve_classification(db_session, "0111-3/01")
        assert first.id == second.id
        assert first.code == "0111-3/01"

    @pytest.mark.parametrize("code", ["", "   ", None])
    def test_blank_code_rejected(self, db_session, code):
        with pytest.raises(InvalidInputError):
            resolve_classification(db_session, code)


class TestConcurrentCreation:
    """A unique-constraint hit on insert means another writer got there first."""

    def test_conflict_refetches_existing_row(self, db_session):
        upsert_classification(db_session, "4711-3/01", "Hipermercados", 3)
        real_find = catalog.find_classification
        calls = {"n": 0}

        def stale_first_lookup(db, code):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return real_find(db, code)

        with patch.object(catalog, "find_classification", side_effect=stale_first_lookup):
            result = resolve_classification(db_session, "4711-3/01")

        assert result.title == "Hipermercados"
        assert calls["n"] == 2
        assert _catalog_count(db_session, "4711-3/01") == 1

    def test_repeated_conflicts_escalate(self, db_session, settings_env):
        settings_env(conflict_retry_limit=2)
        upsert_classification(db_session, "4711-3/01", "Hipermercados", 3)

        with patch.object(catalog, "find_classification", return_value=None):
            with pytest.raises(ClassificationConflictError) as exc_info:
                resolve_classification(db_session, "4711-3/01")

        assert "4711-3/01" in exc_info.value.detail
        assert _catalog_count(db_session, "4711-3/01") == 1


# =============================================================================
# Catalog maintenance
# =============================================================================


class TestUpsertClassification:
    def test_corrects_placeholder_title_in_place(self, db_session):
        created = resolve_classification(db_session, "6201-5/01")
        updated = upsert_classification(
            db_session,
            "6201-5/01",
            "Desenvolvimento de programas de computador sob encomenda",
            2,
            provenance="NR-1 Annex",
        )
        assert updated.id == created.id
        assert updated.title.startswith("Desenvolvimento")
        assert updated.intrinsic_risk == 2
        assert updated.provenance == "NR-1 Annex"
        assert updated.updated_at is not None

    def test_response_carries_catalog_timestamps(self, db_session):
        upsert_classification(db_session, "0111-3/01", "Cultivo de arroz", 3)
        response = ClassificationResponse.model_validate(
            get_classification(db_session, "0111-3/01")
        )
        assert response.code == "0111-3/01"
        assert response.intrinsic_risk == 3
        assert response.created_at is not None
        assert response.updated_at >= response.created_at
        assert "id" not in response.model_dump()

    def test_out_of_range_risk_rejected(self, db_session):
        with pytest.raises(InvalidInputError):
            upsert_classification(db_session, "0111-3/01", "Cultivo de arroz", 9)

    def test_blank_title_rejected(self, db_session):
        with pytest.raises(InvalidInputError):
            upsert_classification(db_session, "0111-3/01", "  ")


class TestGetClassification:
    def test_found(self, db_session):
        upsert_classification(db_session, "0111-3/01", "Cultivo de arroz", 3)
        assert get_classification(db_session, "0111301").title == "Cultivo de arroz"

    def test_missing_raises(self, db_session):
        with pytest.raises(ClassificationNotFoundError):
            get_classification(db_session, "9999-9/99")
        assert find_classification(db_session, "9999-9/99") is None
