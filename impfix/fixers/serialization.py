"""External record format for fixer rules (backup files, API payloads).

Usage:
    from impfix.fixers.serialization import dump_rules, load_rules

    records = load_rules(Path("ImpressionFixers_Backup.json").read_text())
    rules = [record_to_rule(r) for r in records]

Records keep the criteria as the comma-delimited strings the user typed;
they are split into keyword sets only when converted to a ``FixerRule``.
Keys are read case-insensitively, and backups written by the old desktop
editor (``Blurb`` / ``ReplaceMode``) are accepted.
"""

import json
import secrets
from collections.abc import Collection, Iterable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from impfix.fixers.rules import Criteria, FixerRule, Insert, Replace

_LEGACY_KEYS = {
    "blurb": "label",
    "replacemode": "mode",
}


class RuleFormatError(ValueError):
    """A rule record or backup file could not be parsed."""


class FixerRuleRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = ""
    enabled: bool = True
    label: str = ""
    mode: Literal["insert", "replace"] = "insert"
    text: str = ""
    require_comparison: bool = False
    max_comparison_weeks: int = Field(default=0, ge=0)
    criteria_required: str = ""
    criteria_any_of: str = ""
    criteria_exclude: str = ""

    @model_validator(mode="before")
    @classmethod
    def _normalise_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        by_lower = {to_camel(name).lower(): to_camel(name) for name in cls.model_fields}
        legacy, current = {}, {}
        for key, value in data.items():
            lowered = str(key).lower().replace("_", "")
            if lowered in _LEGACY_KEYS:
                if lowered == "replacemode":
                    value = "replace" if value else "insert"
                legacy[by_lower[_LEGACY_KEYS[lowered]]] = value
            elif lowered in by_lower:
                current[by_lower[lowered]] = value
            # Unknown keys are ignored
        return {**legacy, **current}

    @field_validator("mode", mode="before")
    @classmethod
    def _lower_mode(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("label", "text", "criteria_required", "criteria_any_of", "criteria_exclude", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


_RECORD_LIST = TypeAdapter(list[FixerRuleRecord])


def parse_keywords(value: str | None) -> frozenset[str]:
    """Split a comma-delimited criteria string into lower-cased keywords."""
    if not value:
        return frozenset()
    return frozenset(k.strip().lower() for k in value.split(",") if k.strip())


def format_keywords(keywords: Iterable[str]) -> str:
    return ", ".join(sorted(keywords))


def new_rule_id(existing: Collection[str] = ()) -> str:
    """8 hex characters, unique within ``existing``."""
    while True:
        rule_id = secrets.token_hex(4)
        if rule_id not in existing:
            return rule_id


def record_to_rule(record: FixerRuleRecord) -> FixerRule:
    action = Replace(record.text) if record.mode == "replace" else Insert(record.text)
    return FixerRule(
        id=record.id,
        action=action,
        enabled=record.enabled,
        label=record.label,
        require_comparison=record.require_comparison,
        max_comparison_weeks=record.max_comparison_weeks,
        criteria=Criteria(
            required=parse_keywords(record.criteria_required),
            any_of=parse_keywords(record.criteria_any_of),
            exclude=parse_keywords(record.criteria_exclude),
        ),
    )


def rule_to_record(rule: FixerRule) -> FixerRuleRecord:
    return FixerRuleRecord(
        id=rule.id,
        enabled=rule.enabled,
        label=rule.label,
        mode=rule.mode,
        text=rule.text,
        require_comparison=rule.require_comparison,
        max_comparison_weeks=rule.max_comparison_weeks,
        criteria_required=format_keywords(rule.criteria.required),
        criteria_any_of=format_keywords(rule.criteria.any_of),
        criteria_exclude=format_keywords(rule.criteria.exclude),
    )


def parse_record(data: Any) -> FixerRuleRecord:
    try:
        return FixerRuleRecord.model_validate(data)
    except ValidationError as e:
        raise RuleFormatError(f"Invalid fixer rule: {e}") from e


def load_rules(raw: str | bytes) -> list[FixerRuleRecord]:
    """Parse a JSON backup (an array of rule objects)."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RuleFormatError(f"Backup is not valid JSON: {e}") from e
    if data is None:
        return []
    if not isinstance(data, list):
        raise RuleFormatError("Backup must contain a JSON array of rules")
    try:
        return _RECORD_LIST.validate_python(data)
    except ValidationError as e:
        raise RuleFormatError(f"Invalid fixer rule in backup: {e}") from e


def dump_rules(records: Iterable[FixerRuleRecord]) -> str:
    """Serialise records as an indented JSON array with camelCase keys."""
    return json.dumps(
        [r.model_dump(by_alias=True) for r in records],
        indent=2,
        ensure_ascii=False,
    )
