"""Decide whether a fixer rule applies to a study."""

import datetime
from collections.abc import Iterable

from impfix.fixers.rules import FixerRule

_ONE_WEEK = datetime.timedelta(weeks=1)


def _as_datetime(value: datetime.date) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.combine(value, datetime.time.min)


def weeks_between(earlier: datetime.date, later: datetime.date) -> int:
    """Whole weeks (floored) from ``earlier`` to ``later``.

    A naive value is taken to be UTC when the other one carries a timezone.
    """
    start = _as_datetime(earlier)
    end = _as_datetime(later)
    if (start.tzinfo is None) != (end.tzinfo is None):
        if start.tzinfo is None:
            start = start.replace(tzinfo=datetime.timezone.utc)
        else:
            end = end.replace(tzinfo=datetime.timezone.utc)
    return (end - start) // _ONE_WEEK


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(k.lower() in text for k in keywords)


def matches(
    rule: FixerRule,
    study_description: str | None,
    comparison_date: datetime.date | None,
    now: datetime.datetime,
) -> bool:
    """True when ``rule`` is enabled and its criteria accept the study.

    Exclusion wins over any-of. Missing data never raises: a missing or
    blank study description matches nothing.
    """
    if not rule.enabled:
        return False
    if not study_description or not study_description.strip():
        return False

    description = study_description.lower()
    criteria = rule.criteria

    if criteria.required and not all(k.lower() in description for k in criteria.required):
        return False
    if criteria.any_of and not _contains_any(description, criteria.any_of):
        return False
    if criteria.exclude and _contains_any(description, criteria.exclude):
        return False

    if rule.require_comparison:
        if comparison_date is None:
            return False
        if rule.max_comparison_weeks > 0:
            if weeks_between(comparison_date, now) > rule.max_comparison_weeks:
                return False

    return True
