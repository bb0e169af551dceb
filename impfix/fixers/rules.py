"""Fixer rule types.

A fixer rule inserts text into, or replaces, the extracted impression when a
study matches its keyword criteria. Rules are immutable values; editing
happens in the rule store, which hands the engine a fresh ordered tuple.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Insert:
    """Append ``text`` to the impression on a new line."""
    text: str


@dataclass(frozen=True)
class Replace:
    """Overwrite the whole impression with ``text``."""
    text: str


FixerAction = Insert | Replace


@dataclass(frozen=True)
class Criteria:
    """Study-description keyword sets, lower-cased and trimmed.

    - required: ALL must be present (empty = always satisfied)
    - any_of:   at least ONE must be present (empty = always satisfied)
    - exclude:  NONE may be present (empty = never excludes)
    """
    required: frozenset[str] = field(default_factory=frozenset)
    any_of: frozenset[str] = field(default_factory=frozenset)
    exclude: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not (self.required or self.any_of or self.exclude)

    def describe(self) -> str:
        """Short summary for listings, e.g. ``+ct +chest | ct, xr | -cta``."""
        parts = []
        if self.required:
            parts.append(" ".join(f"+{k}" for k in sorted(self.required)))
        if self.any_of:
            parts.append(", ".join(sorted(self.any_of)))
        if self.exclude:
            parts.append(" ".join(f"-{k}" for k in sorted(self.exclude)))
        return " | ".join(parts) if parts else "(all studies)"


@dataclass(frozen=True)
class FixerRule:
    id: str
    action: FixerAction
    enabled: bool = True
    label: str = ""
    require_comparison: bool = False
    max_comparison_weeks: int = 0  # 0 = no limit
    criteria: Criteria = field(default_factory=Criteria)

    @property
    def mode(self) -> str:
        return "replace" if isinstance(self.action, Replace) else "insert"

    @property
    def text(self) -> str:
        return self.action.text

    def __str__(self) -> str:
        prefix = "=" if isinstance(self.action, Replace) else "+"
        return f"{prefix}{self.label or '(unnamed)'}"
