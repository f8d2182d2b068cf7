"""
Declarative metadata filters.

Each source declares an ordered list of FilterSpecs. Request values are turned
into Predicates (field, comparator, value) and applied in declared order with
AND semantics.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from kb_search.core.errors import ArgumentError
from kb_search.models.results import RankedResult


class Comparator(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    ON_OR_AFTER = "on_or_after"
    ON_OR_BEFORE = "on_or_before"

    @property
    def is_date(self) -> bool:
        return self in (Comparator.ON_OR_AFTER, Comparator.ON_OR_BEFORE)


@dataclass(frozen=True)
class FilterSpec:
    """A filter a source accepts: request parameter -> metadata field + comparator."""
    param: str
    field: str
    comparator: Comparator
    description: str = ""


@dataclass(frozen=True)
class Predicate:
    field: str
    comparator: Comparator
    value: str

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        actual = metadata.get(self.field)
        if self.comparator is Comparator.EQUALS:
            return actual is not None and str(actual) == self.value
        if self.comparator is Comparator.CONTAINS:
            return actual is not None and self.value in str(actual)
        # Records without a date are not excluded by a date range
        if actual is None or actual == "":
            return True
        if self.comparator is Comparator.ON_OR_AFTER:
            return str(actual) >= self.value
        return str(actual) <= self.value


def _check_date(param: str, value: str) -> str:
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise ArgumentError(f"{param} must be a YYYY-MM-DD date, got {value!r}") from e
    if len(value) != 10:
        raise ArgumentError(f"{param} must be a YYYY-MM-DD date, got {value!r}")
    return value


def build_predicates(specs: Sequence[FilterSpec], values: Mapping[str, Any] | None) -> List[Predicate]:
    """
    Turn request filter values into predicates, in declared order.
    Unknown parameters raise ArgumentError; None/empty values are skipped.
    """
    values = dict(values or {})
    known = {s.param for s in specs}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ArgumentError(f"unknown filter(s) {unknown}; supported: {sorted(known)}")

    predicates: List[Predicate] = []
    for spec in specs:
        raw = values.get(spec.param)
        if raw is None or raw == "":
            continue
        value = str(raw)
        if spec.comparator.is_date:
            value = _check_date(spec.param, value)
        predicates.append(Predicate(spec.field, spec.comparator, value))
    return predicates


def apply_predicates(results: Iterable[RankedResult], predicates: Sequence[Predicate]) -> List[RankedResult]:
    return [r for r in results if all(p.matches(r.metadata) for p in predicates)]


def describe_filters(specs: Sequence[FilterSpec], values: Mapping[str, Any] | None) -> Dict[str, str]:
    """Echo of the effective filters; unset ones are reported as 'all'."""
    values = values or {}
    echo: Dict[str, str] = {}
    start = end = None
    for spec in specs:
        raw = values.get(spec.param)
        if spec.comparator is Comparator.ON_OR_AFTER:
            start = raw or None
        elif spec.comparator is Comparator.ON_OR_BEFORE:
            end = raw or None
        else:
            echo[spec.param] = str(raw) if raw not in (None, "") else "all"

    if any(s.comparator.is_date for s in specs):
        if start and end:
            echo["date_range"] = f"{start} to {end}"
        elif start:
            echo["date_range"] = f"from {start}"
        elif end:
            echo["date_range"] = f"until {end}"
        else:
            echo["date_range"] = "all"
    return echo
