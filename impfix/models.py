from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class FixerRuleRow(Base):
    __tablename__ = "fixer_rules"

    id = Column(String(32), primary_key=True)
    position = Column(Integer, nullable=False)  # configured order, 0-based
    enabled = Column(Boolean, nullable=False, default=True)
    label = Column(String, nullable=False, default="")

    mode = Column(String, nullable=False, default="insert")  # "insert" or "replace"
    text = Column(Text, nullable=False, default="")

    require_comparison = Column(Boolean, nullable=False, default=False)
    max_comparison_weeks = Column(Integer, nullable=False, default=0)  # 0 = no limit

    # Comma-delimited, as typed by the user
    criteria_required = Column(Text, nullable=False, default="")
    criteria_any_of = Column(Text, nullable=False, default="")
    criteria_exclude = Column(Text, nullable=False, default="")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_fixer_rules_position", "position"),
    )


class RetiredRuleId(Base):
    """Ids of deleted rules; never handed out again."""
    __tablename__ = "retired_rule_ids"

    id = Column(String(32), primary_key=True)
    retired_at = Column(DateTime, nullable=False, server_default=func.now())
