"""Classification code and risk value normalization.

CNAE subclass codes have seven digits and are displayed as NNNN-N/NN.
Inputs arrive both ways (BrasilAPI returns bare digits, forms send the
formatted string), so both collapse to the formatted form.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

# Digits plus the separators CNAE codes are written with, nothing else
_CNAE_SHAPE = re.compile(r"^(\d{4})[-.\s]?(\d)[-/.\s]?(\d{2})$")


def format_classification_code(raw: Optional[str]) -> str:
    """Trim a code and format seven-digit codes as NNNN-N/NN.

    Only digits and CNAE separators qualify; codes from other taxonomies
    (letters, other lengths) are returned trimmed but otherwise untouched.
    None becomes "".
    """
    if raw is None:
        return ""
    code = str(raw).strip()
    match = _CNAE_SHAPE.match(code)
    if match is None:
        return code
    return "{}-{}/{}".format(*match.groups())


def normalize_risk(
    value: Any, risk_min: Optional[int] = None, risk_max: Optional[int] = None
) -> Optional[int]:
    """Coerce a submitted risk value to an int grade, or None.

    Absent, non-numeric, non-finite, and fractional values are None, as are
    values outside [risk_min, risk_max] when bounds are given.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or not number.is_integer():
        return None

    risk = int(number)
    if risk_min is not None and risk < risk_min:
        return None
    if risk_max is not None and risk > risk_max:
        return None
    return risk
