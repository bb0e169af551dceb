"""Apply fixer rules to an extracted impression.

Rules are applied in their configured order: every matching enabled rule
takes effect, a Replace discards everything before it and an Insert appends
to whatever the impression holds at that point.
"""

import datetime
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from impfix.fixers.matcher import matches
from impfix.fixers.rules import FixerRule, Insert, Replace
from impfix.impression.extractor import Report, extract_impression

logger = logging.getLogger(__name__)


def select_rules(
    rules: Iterable[FixerRule],
    study_description: str | None,
    comparison_date: datetime.date | None,
    now: datetime.datetime,
) -> list[FixerRule]:
    """Return the rules that match the study, in configured order."""
    return [r for r in rules if matches(r, study_description, comparison_date, now)]


def _apply(accumulator: str, rule: FixerRule) -> str:
    action = rule.action
    if isinstance(action, Replace):
        return action.text
    if isinstance(action, Insert):
        separator = "\n" if accumulator else ""
        return accumulator + separator + action.text
    raise TypeError(f"Unknown fixer action {action!r} on rule {rule.id}")


def _fold(impression: str, selected: Iterable[FixerRule]) -> str:
    result = impression
    for rule in selected:
        result = _apply(result, rule)
    return result


def apply_fixers(
    impression: str,
    rules: Iterable[FixerRule],
    study_description: str | None,
    comparison_date: datetime.date | None,
    now: datetime.datetime,
) -> str:
    """Fold the matching rules over ``impression`` and return the result."""
    return _fold(impression, select_rules(rules, study_description, comparison_date, now))


@dataclass(frozen=True)
class ProcessedImpression:
    extracted: str
    text: str
    applied_rule_ids: tuple[str, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.text


def _default_now(comparison_date: datetime.date | None) -> datetime.datetime:
    # Match the comparison date: aware UTC against an aware datetime, local wall time otherwise
    if isinstance(comparison_date, datetime.datetime) and comparison_date.tzinfo is not None:
        return datetime.datetime.now(datetime.timezone.utc)
    return datetime.datetime.now()


def process_report(
    report: Report,
    rules: Sequence[FixerRule],
    now: datetime.datetime | None = None,
) -> ProcessedImpression:
    """Extract the impression from ``report`` and run the fixer rules over it.

    When the report has no impression the rules are folded over an empty
    string, so Insert rules still produce text.
    """
    if now is None:
        now = _default_now(report.comparison_date)

    extracted = extract_impression(report.text)
    selected = select_rules(rules, report.study_description, report.comparison_date, now)
    text = _fold(extracted.text, selected)

    if selected:
        logger.debug(
            "Applied %d of %d fixer rule(s) for '%s': %s",
            len(selected), len(rules), report.study_description,
            ", ".join(r.id for r in selected),
        )

    return ProcessedImpression(
        extracted=extracted.text,
        text=text,
        applied_rule_ids=tuple(r.id for r in selected),
    )
