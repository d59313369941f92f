"""
Preliminary IUCN Criterion B inference from EOO/AOO and qualitative flags.

Criterion B (geographic range) is met when the range is small enough for a
threatened category, either by EOO (B1) or AOO (B2), and at least two of:

    a. severely fragmented, or known at no more than N locations;
    b. continuing decline in (i) EOO, (ii) AOO, (iii) habitat, (iv) locations
       or subpopulations, (v) mature individuals;
    c. extreme fluctuations in any of the same items.

The output is a suggestion for the assessor, not a listing decision.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Literal, Mapping, Optional, Tuple

from redlist_metrics.occurrence import is_finite_number

RiskCategory = Literal["CR", "EN", "VU", "NT", "LC", "DD"]
Subcriterion = Literal["a", "b", "c"]

ITEM_ORDER: Tuple[str, ...] = ("i", "ii", "iii", "iv", "v")


@dataclass(frozen=True)
class SpatialThreshold:
    eoo_max_exclusive_km2: float
    aoo_max_exclusive_km2: float
    locations_max_inclusive: int


# Ordered from highest to lowest risk.
SPATIAL_THRESHOLDS: Dict[str, SpatialThreshold] = {
    "CR": SpatialThreshold(100, 10, 1),
    "EN": SpatialThreshold(5000, 500, 5),
    "VU": SpatialThreshold(20000, 2000, 10),
}

RISK_PRIORITY: Dict[str, int] = {"CR": 5, "EN": 4, "VU": 3, "NT": 2, "LC": 1, "DD": 0}


def normalize_items(items: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Known items, deduplicated, in i..v order."""
    if not items:
        return ()
    wanted = set(items)
    return tuple(item for item in ITEM_ORDER if item in wanted)


@dataclass(frozen=True)
class DeclineIndicator:
    """Subcriterion b or c: whether it applies and which items it concerns."""

    enabled: bool = False
    items: FrozenSet[str] = frozenset()

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "DeclineIndicator":
        if not d:
            return cls()
        return cls(enabled=d.get("enabled") is True, items=frozenset(normalize_items(d.get("items"))))


@dataclass(frozen=True)
class CriterionBInput:
    """Qualitative information supplied by the assessor."""

    severely_fragmented: bool = False
    number_of_locations: Optional[int] = None
    continuing_decline: DeclineIndicator = field(default_factory=DeclineIndicator)
    extreme_fluctuations: DeclineIndicator = field(default_factory=DeclineIndicator)

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "CriterionBInput":
        """Build from the persisted camelCase form; missing keys take defaults."""
        if not d:
            return cls()
        locations = d.get("numberOfLocations")
        return cls(
            severely_fragmented=d.get("severelyFragmented") is True,
            number_of_locations=locations if is_finite_number(locations) else None,
            continuing_decline=DeclineIndicator.from_dict(d.get("continuingDecline")),
            extreme_fluctuations=DeclineIndicator.from_dict(d.get("extremeFluctuations")),
        )


@dataclass(frozen=True)
class CriterionBInference:
    spatial_category: RiskCategory
    b1_triggered: bool
    b2_triggered: bool
    subcriteria_satisfied: Tuple[Subcriterion, ...]
    criterion_b_met: bool
    suggested_category: RiskCategory
    suggested_code: Optional[str]
    notes: Tuple[str, ...]
    needs_recalc: bool

    def to_dict(self) -> dict:
        return {
            "spatialCategory": self.spatial_category,
            "b1Triggered": self.b1_triggered,
            "b2Triggered": self.b2_triggered,
            "subcriteriaSatisfied": list(self.subcriteria_satisfied),
            "criterionBMet": self.criterion_b_met,
            "suggestedCategory": self.suggested_category,
            "suggestedCode": self.suggested_code,
            "notes": list(self.notes),
            "needsRecalc": self.needs_recalc,
        }


def _category_by_eoo(eoo_km2: Optional[float]) -> Optional[str]:
    if not is_finite_number(eoo_km2):
        return None
    for category, threshold in SPATIAL_THRESHOLDS.items():
        if eoo_km2 < threshold.eoo_max_exclusive_km2:
            return category
    return None


def _category_by_aoo(aoo_km2: Optional[float]) -> Optional[str]:
    if not is_finite_number(aoo_km2):
        return None
    for category, threshold in SPATIAL_THRESHOLDS.items():
        if aoo_km2 < threshold.aoo_max_exclusive_km2:
            return category
    return None


def _higher_risk(left: Optional[str], right: Optional[str]) -> Optional[str]:
    if left is None:
        return right
    if right is None:
        return left
    return left if RISK_PRIORITY[left] >= RISK_PRIORITY[right] else right


def _subcriteria_code(
    satisfied: Tuple[str, ...],
    b_items: Tuple[str, ...],
    c_items: Tuple[str, ...],
) -> str:
    code = ""
    if "a" in satisfied:
        code += "a"
    if "b" in satisfied:
        code += f"b({','.join(b_items)})" if b_items else "b"
    if "c" in satisfied:
        code += f"c({','.join(c_items)})" if c_items else "c"
    return code


def infer_criterion_b(
    eoo_km2: Optional[float],
    aoo_km2: Optional[float],
    eoo_stale: bool = False,
    aoo_stale: bool = False,
    assessment: Optional[CriterionBInput] = None,
) -> CriterionBInference:
    """
    Suggest a Criterion B category and code.

    Args:
        eoo_km2: Latest EOO in km², or None if not computed.
        aoo_km2: Latest AOO in km², or None if not computed.
        eoo_stale: Whether the EOO result no longer matches the occurrences.
        aoo_stale: Whether the AOO result no longer matches the occurrences.
        assessment: Fragmentation, locations, decline and fluctuation flags.

    Returns:
        A CriterionBInference. Stale inputs still produce a suggestion; they
        set ``needs_recalc`` and add a warning note.

    Example:
        >>> inference = infer_criterion_b(
        ...     50, None,
        ...     assessment=CriterionBInput(
        ...         severely_fragmented=True,
        ...         continuing_decline=DeclineIndicator(True, frozenset({"iii"})),
        ...     ),
        ... )
        >>> inference.suggested_code
        'CR B1ab(iii)'
    """
    assessment = assessment or CriterionBInput()
    notes: List[str] = []

    has_eoo = is_finite_number(eoo_km2)
    has_aoo = is_finite_number(aoo_km2)
    best = _higher_risk(_category_by_eoo(eoo_km2), _category_by_aoo(aoo_km2))

    if best is not None:
        spatial_category = best
    elif has_eoo or has_aoo:
        spatial_category = "LC"
    else:
        spatial_category = "DD"

    threshold = SPATIAL_THRESHOLDS.get(spatial_category)
    b1_triggered = threshold is not None and has_eoo and eoo_km2 < threshold.eoo_max_exclusive_km2
    b2_triggered = threshold is not None and has_aoo and aoo_km2 < threshold.aoo_max_exclusive_km2

    locations = assessment.number_of_locations
    valid_locations = locations if is_finite_number(locations) and locations >= 0 else None

    a_satisfied = threshold is not None and (
        assessment.severely_fragmented
        or (valid_locations is not None and valid_locations <= threshold.locations_max_inclusive)
    )
    b_satisfied = assessment.continuing_decline.enabled
    c_satisfied = assessment.extreme_fluctuations.enabled

    satisfied = tuple(
        letter
        for letter, ok in (("a", a_satisfied), ("b", b_satisfied), ("c", c_satisfied))
        if ok
    )
    criterion_b_met = threshold is not None and len(satisfied) >= 2

    suggested_code = None
    if criterion_b_met:
        sub = _subcriteria_code(
            satisfied,
            normalize_items(assessment.continuing_decline.items),
            normalize_items(assessment.extreme_fluctuations.items),
        )
        parts = []
        if b1_triggered:
            parts.append(f"B1{sub}")
        if b2_triggered:
            # IUCN notation shares the "B": B1ab(iii)+2ab(iii)
            parts.append(f"2{sub}" if b1_triggered else f"B2{sub}")
        if parts:
            suggested_code = f"{spatial_category} {'+'.join(parts)}"
        notes.append(
            f"Criterion B suggestion: {spatial_category}"
            + (f" ({suggested_code})." if suggested_code else ".")
        )
    elif threshold is not None:
        via = [name for name, hit in (("B1", b1_triggered), ("B2", b2_triggered)) if hit]
        notes.append(
            f"Meets the spatial threshold for {spatial_category} via {'/'.join(via) or 'B1/B2'}, "
            "but fewer than two of subcriteria a/b/c are satisfied."
        )
    elif spatial_category == "DD":
        notes.append("Insufficient data to apply Criterion B (EOO and AOO missing).")
    else:
        notes.append("EOO/AOO are above the VU thresholds for Criterion B.")

    needs_recalc = bool(eoo_stale or aoo_stale)
    if needs_recalc:
        notes.append("EOO/AOO results are out of date; recalculate before relying on this suggestion.")

    return CriterionBInference(
        spatial_category=spatial_category,
        b1_triggered=b1_triggered,
        b2_triggered=b2_triggered,
        subcriteria_satisfied=satisfied,
        criterion_b_met=criterion_b_met,
        suggested_category=spatial_category,
        suggested_code=suggested_code,
        notes=tuple(notes),
        needs_recalc=needs_recalc,
    )
