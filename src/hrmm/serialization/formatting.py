"""Number formatting and grouping helpers shared by the serializers."""

import math
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from ..model import FamilyMeta, MetricSample, SelectedSample

# Decimal exponents outside [-4, 6) switch to scientific notation, like %g.
MIN_FIXED_EXPONENT = -4
MAX_FIXED_EXPONENT = 6


def format_value(value: float) -> str:
    """Format a float with the fewest digits that round-trip.

    Matches ``%g`` with shortest precision: ``4.478424e+06``, ``134335``,
    ``0.1``, ``1e-05``. NaN and infinities use the exposition literals.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    sign, digit_tuple, exponent = Decimal(repr(float(value))).as_tuple()
    point = len(digit_tuple) + exponent
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    prefix = "-" if sign else ""

    decimal_exponent = point - 1
    if decimal_exponent < MIN_FIXED_EXPONENT or decimal_exponent >= MAX_FIXED_EXPONENT:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        exp_sign = "-" if decimal_exponent < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(decimal_exponent):02d}"

    if point <= 0:
        body = "0." + "0" * -point + digits
    elif point >= len(digits):
        body = digits + "0" * (point - len(digits))
    else:
        body = digits[:point] + "." + digits[point:]
    return prefix + body


def escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def group_by_family(
    samples: Iterable[SelectedSample],
) -> List[Tuple[FamilyMeta, List[MetricSample]]]:
    """Group selected samples by family name, sorted by name.

    Samples keep their relative order within a family. The metadata of the
    first sample seen for a name describes the whole group.
    """
    metas: Dict[str, FamilyMeta] = {}
    groups: Dict[str, List[MetricSample]] = {}
    for selected in samples:
        name = selected.family.name
        if name not in metas:
            metas[name] = selected.family
            groups[name] = []
        groups[name].append(selected.sample)
    return [(metas[name], groups[name]) for name in sorted(groups)]
