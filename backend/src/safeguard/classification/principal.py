"""Principal classification selection.

Pure and deterministic: the same entries always give the same result, which
is what makes repeated synchronizations idempotent.
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Sequence


class RiskPair(NamedTuple):
    code: str
    risk_level: Optional[int] = None


class PrincipalSelection(NamedTuple):
    principal: Optional[str]
    aggregate_risk: Optional[int]


def select_principal(entries: Sequence[RiskPair]) -> PrincipalSelection:
    """Pick the principal code and aggregate risk for a set of classifications.

    - No entries: (None, None).
    - No entry carries a risk: the first entry in input order is principal and
      the aggregate risk is None.
    - Otherwise the aggregate is the highest risk, and the principal is the
      smallest code (ordinal string comparison) among those at that risk.

    Args:
        entries: (code, risk_level) pairs; risk_level None means unknown.

    Returns:
        PrincipalSelection(principal, aggregate_risk).
    """
    if not entries:
        return PrincipalSelection(None, None)

    with_risk = [e for e in entries if e.risk_level is not None]
    if not with_risk:
        return PrincipalSelection(entries[0].code, None)

    max_risk = max(e.risk_level for e in with_risk)
    principal = min(e.code for e in with_risk if e.risk_level == max_risk)
    return PrincipalSelection(principal, max_risk)
