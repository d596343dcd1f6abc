from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from .utils import collapse_whitespace, normalize_unit

_OTHER_UNITS = r"plants?|flats?|bags?|gallons?|gals?|pounds?|lbs?|each"
_ALL_UNITS = rf"yards?|yds?|{_OTHER_UNITS}"

# Ordered; the first pattern that matches wins.
QUANTITY_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"(?:\bneed\s+)?(\d+)\s*(yards?|yds?)\b", re.IGNORECASE),
    re.compile(rf"(?:\bneed\s+)?(\d+)\s*({_OTHER_UNITS})\b", re.IGNORECASE),
    re.compile(rf"\bneed\s+(\d+)(?:\s*({_ALL_UNITS})\b)?", re.IGNORECASE),
)


@dataclass(frozen=True)
class QuantityRequest:
    """Requested amount pulled out of a query, e.g. "need 5 yards" -> (5, "yards")."""
    quantity: int
    unit: Optional[str]
    span: Tuple[int, int]

    def strip_from(self, query: str) -> str:
        """Return the query with the quantity phrase removed and spacing collapsed."""
        start, end = self.span
        return collapse_whitespace(query[:start] + " " + query[end:])


def parse_quantity(query: str) -> Optional[QuantityRequest]:
    """Purpose: Extract a requested quantity and canonical unit from free text.
    Inputs/Outputs: Input is the raw query; output is a QuantityRequest or None.
    Side Effects / State: None.
    Dependencies: Uses QUANTITY_PATTERNS in order and normalize_unit.
    Failure Modes: Returns None when no pattern matches. A bare "need 5" yields
        unit None, which never produces an availability line.
    If Removed: Inventory answers lose the have-enough / short annotation.
    Testing Notes: "need 5 yards mulch" -> (5, "yards"); "10 lbs seed" -> (10, "pounds").
    """
    # Try each pattern in priority order.
    if not query:
        return None
    for pattern in QUANTITY_PATTERNS:
        match = pattern.search(query)
        if not match:
            continue
        return QuantityRequest(
            quantity=int(match.group(1)),
            unit=normalize_unit(match.group(2)),
            span=match.span(),
        )
    return None
