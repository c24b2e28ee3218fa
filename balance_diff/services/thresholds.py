"""Alert thresholds on balance diffs (absolute native units or percent of previous)."""

from __future__ import annotations

import re
from decimal import Decimal, localcontext
from typing import Optional

from ..core.amounts import safe_decimal, to_decimal
from ..core.models import AlertOutcome, BalanceDiffRecord, ThresholdOperator, ThresholdSpec

_THRESHOLD_RE = re.compile(r"^\s*(>=|<=|>|<)?\s*([+-]?\d+\.?\d*)\s*$")


def parse_threshold(text: Optional[str]) -> Optional[ThresholdSpec]:
    """Parse ``[operator]<number>``; operator defaults to ``>``.

    Returns None for empty or malformed input.
    """
    if not text or not text.strip():
        return None
    match = _THRESHOLD_RE.match(text)
    if not match:
        return None
    value = safe_decimal(match.group(2))
    if value is None:
        return None
    operator = ThresholdOperator(match.group(1) or ">")
    return ThresholdSpec(operator=operator, value=value, source=text.strip())


def evaluate_absolute(record: BalanceDiffRecord, decimals: int, spec: Optional[ThresholdSpec]) -> bool:
    if spec is None:
        return False
    return spec.operator.compare(to_decimal(record.diff, decimals), spec.value)


def evaluate_percentage(record: BalanceDiffRecord, decimals: int, spec: Optional[ThresholdSpec]) -> bool:
    """Percent change relative to the previous balance; never fires from a zero base."""
    if spec is None or record.previous.raw == 0:
        return False
    digits = len(str(abs(record.diff))) + len(str(abs(record.previous.raw))) + 10
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, digits)
        percent = Decimal(record.diff) / Decimal(record.previous.raw) * 100
    return spec.operator.compare(percent, spec.value)


def evaluate_alert(
    record: BalanceDiffRecord,
    decimals: int,
    absolute: Optional[ThresholdSpec] = None,
    percentage: Optional[ThresholdSpec] = None,
) -> AlertOutcome:
    if evaluate_absolute(record, decimals, absolute):
        return AlertOutcome(triggered=True, triggered_by="absolute")
    if evaluate_percentage(record, decimals, percentage):
        return AlertOutcome(triggered=True, triggered_by="percentage")
    return AlertOutcome()


__all__ = ["parse_threshold", "evaluate_absolute", "evaluate_percentage", "evaluate_alert"]
