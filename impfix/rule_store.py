"""Ordered, SQLite-backed store of fixer rules.

Usage:
    from impfix.rule_store import get_rule_store

    store = get_rule_store()
    rules = store.rules()          # immutable tuple of FixerRule, in order
    store.move(rule_id, -1)        # one place up

The engine never sees the store; it is handed ``store.rules()`` per report.
"""

import logging

from impfix.fixers.rules import FixerRule
from impfix.fixers.serialization import (
    FixerRuleRecord,
    dump_rules,
    load_rules,
    new_rule_id,
    record_to_rule,
)
from impfix.models import FixerRuleRow, RetiredRuleId

logger = logging.getLogger(__name__)

# Record fields copied onto a row on add/update
_EDITABLE_FIELDS = (
    "enabled",
    "label",
    "mode",
    "text",
    "require_comparison",
    "max_comparison_weeks",
    "criteria_required",
    "criteria_any_of",
    "criteria_exclude",
)


class RuleNotFoundError(KeyError):
    """No fixer rule with the given id."""


class RuleStore:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_records(self) -> list[FixerRuleRecord]:
        with self._session_factory() as session:
            rows = session.query(FixerRuleRow).order_by(FixerRuleRow.position).all()
            return [self._row_to_record(r) for r in rows]

    def rules(self) -> tuple[FixerRule, ...]:
        """Snapshot of the configured rules for one engine run."""
        return tuple(record_to_rule(r) for r in self.list_records())

    def get(self, rule_id: str) -> FixerRuleRecord:
        with self._session_factory() as session:
            row = self._require(session, rule_id)
            return self._row_to_record(row)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def add(self, record: FixerRuleRecord) -> FixerRuleRecord:
        """Append a rule at the end. It always gets a fresh id."""
        with self._session_factory() as session:
            live = {rid for (rid,) in session.query(FixerRuleRow.id).all()}
            retired = {rid for (rid,) in session.query(RetiredRuleId.id).all()}
            row = FixerRuleRow(id=new_rule_id(live | retired), position=len(live))
            self._copy_fields(record, row)
            session.add(row)
            session.commit()
            logger.info("Added fixer rule '%s' (%s)", row.id, row.label)
            return self._row_to_record(row)

    def update(self, rule_id: str, record: FixerRuleRecord) -> FixerRuleRecord:
        """Overwrite a rule's fields; its id and position are kept."""
        with self._session_factory() as session:
            row = self._require(session, rule_id)
            self._copy_fields(record, row)
            session.commit()
            logger.info("Updated fixer rule '%s'", rule_id)
            return self._row_to_record(row)

    def delete(self, rule_id: str):
        with self._session_factory() as session:
            row = self._require(session, rule_id)
            session.delete(row)
            session.add(RetiredRuleId(id=rule_id))
            session.flush()
            self._renumber(session)
            session.commit()
            logger.info("Deleted fixer rule '%s'", rule_id)

    def move(self, rule_id: str, offset: int) -> int:
        """Move a rule ``offset`` places (negative = up). Returns the new index.

        Moves past either end of the list are clamped.
        """
        with self._session_factory() as session:
            rows = session.query(FixerRuleRow).order_by(FixerRuleRow.position).all()
            index = next((i for i, r in enumerate(rows) if r.id == rule_id), None)
            if index is None:
                raise RuleNotFoundError(rule_id)
            new_index = max(0, min(len(rows) - 1, index + offset))
            if new_index != index:
                row = rows.pop(index)
                rows.insert(new_index, row)
                for position, r in enumerate(rows):
                    r.position = position
                session.commit()
                logger.info("Moved fixer rule '%s' from %d to %d", rule_id, index, new_index)
            return new_index

    def toggle(self, rule_id: str) -> bool:
        with self._session_factory() as session:
            row = self._require(session, rule_id)
            row.enabled = not row.enabled
            session.commit()
            return row.enabled

    def clone(self, rule_id: str) -> FixerRuleRecord:
        """Copy a rule to the end of the list under a new id."""
        source = self.get(rule_id)
        copy = source.model_copy(update={"label": f"{source.label} (Copy)"})
        return self.add(copy)

    # ------------------------------------------------------------------
    # Backup / restore
    # ------------------------------------------------------------------

    def backup(self) -> str:
        return dump_rules(self.list_records())

    def restore(self, raw: str | bytes) -> list[FixerRuleRecord]:
        """Append every rule from a JSON backup, each under a fresh id.

        Raises RuleFormatError before anything is written if the backup
        does not parse.
        """
        imported = load_rules(raw)
        added = [self.add(record) for record in imported]
        logger.info("Restored %d fixer rule(s) from backup", len(added))
        return added

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require(session, rule_id: str) -> FixerRuleRow:
        row = session.query(FixerRuleRow).filter_by(id=rule_id).first()
        if row is None:
            raise RuleNotFoundError(rule_id)
        return row

    @staticmethod
    def _renumber(session):
        rows = session.query(FixerRuleRow).order_by(FixerRuleRow.position).all()
        for position, row in enumerate(rows):
            row.position = position

    @staticmethod
    def _copy_fields(record: FixerRuleRecord, row: FixerRuleRow):
        for name in _EDITABLE_FIELDS:
            setattr(row, name, getattr(record, name))

    @staticmethod
    def _row_to_record(row: FixerRuleRow) -> FixerRuleRecord:
        return FixerRuleRecord(
            id=row.id,
            enabled=row.enabled,
            label=row.label or "",
            mode=row.mode,
            text=row.text or "",
            require_comparison=row.require_comparison,
            max_comparison_weeks=row.max_comparison_weeks or 0,
            criteria_required=row.criteria_required or "",
            criteria_any_of=row.criteria_any_of or "",
            criteria_exclude=row.criteria_exclude or "",
        )


# Module-level singleton, created lazily once database.py has set up SessionLocal
_rule_store: RuleStore | None = None


def get_rule_store() -> RuleStore:
    global _rule_store
    if _rule_store is None:
        from impfix.database import SessionLocal
        _rule_store = RuleStore(SessionLocal)
    return _rule_store
