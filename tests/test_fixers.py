"""Tests for fixer rule matching and the Insert/Replace pipeline."""

import datetime

import pytest

from impfix.fixers.matcher import matches, weeks_between
from impfix.fixers.pipeline import apply_fixers, process_report, select_rules
from impfix.fixers.rules import Criteria, FixerRule, Insert, Replace
from impfix.impression.extractor import Report

NOW = datetime.datetime(2026, 10, 19, 9, 30)


def _rule(rule_id="r1", action=None, required=(), any_of=(), exclude=(), **kwargs):
    return FixerRule(
        id=rule_id,
        action=action or Insert("Recommend follow-up."),
        criteria=Criteria(
            required=frozenset(required),
            any_of=frozenset(any_of),
            exclude=frozenset(exclude),
        ),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# matches
# ---------------------------------------------------------------------------

def test_disabled_rule_never_matches():
    rule = _rule(enabled=False, any_of={"ct"})
    assert not matches(rule, "CT CHEST", None, NOW)
    assert not matches(_rule(enabled=False), "anything", None, NOW)


@pytest.mark.parametrize("description", ["CT CHEST", "XR", "MR BRAIN W/WO"])
def test_empty_criteria_match_every_study(description):
    assert matches(_rule(), description, None, NOW)


def test_required_keywords_must_all_be_present():
    rule = _rule(required={"ct", "chest"})
    assert matches(rule, "CT CHEST W/O CONTRAST", None, NOW)
    assert not matches(rule, "CT ABDOMEN PELVIS", None, NOW)


def test_any_of_needs_one_keyword():
    rule = _rule(any_of={"ct", "chest"})
    assert matches(rule, "XR CHEST 2 VIEWS", None, NOW)
    assert not matches(rule, "MR BRAIN", None, NOW)


def test_exclude_blocks_match():
    rule = _rule(required={"ct"}, exclude={"contrast"})
    assert matches(rule, "CT HEAD", None, NOW)
    assert not matches(rule, "CT CHEST W/O CONTRAST", None, NOW)


def test_exclude_wins_over_any_of():
    rule = _rule(any_of={"ct"}, exclude={"cta"})
    assert not matches(rule, "CTA CHEST", None, NOW)


def test_keywords_match_case_insensitively():
    rule = _rule(required={"Chest"}, any_of={"CT"})
    assert matches(rule, "ct chest", None, NOW)


@pytest.mark.parametrize("description", [None, "", "   "])
def test_missing_description_never_matches(description):
    assert not matches(_rule(), description, None, NOW)
    assert not matches(_rule(required={"ct"}), description, None, NOW)
    assert not matches(_rule(any_of={"ct"}), description, None, NOW)
    assert not matches(_rule(exclude={"ct"}), description, None, NOW)
    assert not matches(_rule(require_comparison=True), description, datetime.date(2026, 10, 1), NOW)


def test_require_comparison_needs_a_date():
    rule = _rule(require_comparison=True)
    assert not matches(rule, "CT CHEST", None, NOW)
    assert matches(rule, "CT CHEST", datetime.date(2019, 1, 1), NOW)


def test_comparison_older_than_limit_never_matches():
    rule = _rule(any_of={"ct"}, require_comparison=True, max_comparison_weeks=4)
    six_weeks_ago = NOW - datetime.timedelta(weeks=6)
    assert not matches(rule, "CT CHEST", six_weeks_ago, NOW)
    assert not matches(_rule(require_comparison=True, max_comparison_weeks=4), "CT CHEST", six_weeks_ago, NOW)


def test_comparison_age_uses_whole_weeks():
    rule = _rule(require_comparison=True, max_comparison_weeks=4)
    assert matches(rule, "CT CHEST", NOW - datetime.timedelta(weeks=4, days=6, hours=23), NOW)
    assert not matches(rule, "CT CHEST", NOW - datetime.timedelta(weeks=5), NOW)


def test_zero_max_weeks_means_no_limit():
    rule = _rule(require_comparison=True, max_comparison_weeks=0)
    assert matches(rule, "CT CHEST", NOW - datetime.timedelta(weeks=300), NOW)


def test_max_weeks_ignored_without_require_comparison():
    rule = _rule(require_comparison=False, max_comparison_weeks=2)
    assert matches(rule, "CT CHEST", None, NOW)
    assert matches(rule, "CT CHEST", NOW - datetime.timedelta(weeks=10), NOW)


def test_comparison_date_without_time():
    rule = _rule(require_comparison=True, max_comparison_weeks=4)
    assert matches(rule, "CT CHEST", datetime.date(2026, 9, 21), NOW)
    assert not matches(rule, "CT CHEST", datetime.date(2026, 9, 7), NOW)


def test_weeks_between_mixed_timezones():
    aware_now = datetime.datetime(2026, 10, 19, tzinfo=datetime.timezone.utc)
    assert weeks_between(datetime.datetime(2026, 10, 5), aware_now) == 2
    assert weeks_between(datetime.date(2026, 10, 26), NOW) == -1


# ---------------------------------------------------------------------------
# apply_fixers
# ---------------------------------------------------------------------------

def test_insert_appends_on_new_line():
    rule = _rule(any_of={"CT", "CHEST"}, action=Insert("Recommend follow-up."))
    result = apply_fixers("No acute disease.", [rule], "CT CHEST W/O CONTRAST", None, NOW)
    assert result == "No acute disease.\nRecommend follow-up."


def test_replace_then_insert():
    rules = [_rule("a", Replace("A")), _rule("b", Insert("B"))]
    assert apply_fixers("orig", rules, "CT CHEST", None, NOW) == "A\nB"


def test_later_replace_discards_earlier_rules():
    rules = [_rule("a", Insert("B")), _rule("b", Replace("X")), _rule("c", Replace("A"))]
    assert apply_fixers("orig", rules, "CT CHEST", None, NOW) == "A"


def test_single_disabled_rule_changes_nothing():
    rules = [_rule(action=Replace("gone"), enabled=False)]
    assert apply_fixers("No acute disease.", rules, "CT CHEST", None, NOW) == "No acute disease."


def test_no_rules_returns_impression_unchanged():
    assert apply_fixers("orig", [], "CT CHEST", None, NOW) == "orig"


def test_insert_into_empty_impression_has_no_leading_newline():
    assert apply_fixers("", [_rule(action=Insert("X"))], "CT CHEST", None, NOW) == "X"


def test_non_matching_rules_are_skipped_in_order():
    rules = [
        _rule("a", Insert("first"), any_of={"ct"}),
        _rule("b", Replace("never"), any_of={"mr"}),
        _rule("c", Insert("second"), required={"chest"}),
    ]
    assert apply_fixers("orig", rules, "CT CHEST", None, NOW) == "orig\nfirst\nsecond"
    assert [r.id for r in select_rules(rules, "CT CHEST", None, NOW)] == ["a", "c"]


def test_rule_list_is_not_modified():
    rules = [_rule("a", Replace("A")), _rule("b", Insert("B"))]
    snapshot = list(rules)
    apply_fixers("orig", rules, "CT", None, NOW)
    assert rules == snapshot


def test_rule_display_and_mode():
    rule = _rule(action=Replace("Normal."), label="Normal CXR", any_of={"xr", "chest"}, exclude={"ribs"})
    assert rule.mode == "replace"
    assert rule.text == "Normal."
    assert str(rule) == "=Normal CXR"
    assert rule.criteria.describe() == "chest, xr | -ribs"
    assert Criteria().describe() == "(all studies)"


# ---------------------------------------------------------------------------
# process_report
# ---------------------------------------------------------------------------

def test_process_report_extracts_then_fixes():
    report = Report(
        text="FINDINGS: clear\nIMPRESSION: 1. Normal study. 2. No acute findings.\nSIGNATURE: Dr. X",
        study_description="CT CHEST W/O CONTRAST",
        comparison_date=datetime.date(2026, 10, 1),
    )
    rules = [
        _rule("a", Insert("3. Recommend follow-up."), any_of={"chest"}, require_comparison=True),
        _rule("b", Replace("never"), any_of={"brain"}),
    ]
    result = process_report(report, rules, now=NOW)
    assert result.extracted == "1. Normal study.\n2. No acute findings."
    assert result.text == "1. Normal study.\n2. No acute findings.\n3. Recommend follow-up."
    assert result.applied_rule_ids == ("a",)


def test_process_report_without_impression():
    report = Report(text="FINDINGS: clear", study_description="XR CHEST")
    result = process_report(report, [_rule(action=Insert("Normal."))], now=NOW)
    assert result.extracted == ""
    assert result.text == "Normal."

    assert process_report(report, [], now=NOW).empty


def test_process_report_default_now_follows_comparison_timezone():
    from impfix.fixers.pipeline import _default_now

    aware = datetime.datetime(2026, 9, 21, tzinfo=datetime.timezone(datetime.timedelta(hours=10)))
    assert _default_now(aware).tzinfo is not None
    assert _default_now(datetime.datetime(2026, 9, 21)).tzinfo is None
    assert _default_now(datetime.date(2026, 9, 21)).tzinfo is None
    assert _default_now(None).tzinfo is None


def test_process_report_aware_comparison_without_now():
    brisbane = datetime.timezone(datetime.timedelta(hours=10))
    rule = _rule(action=Insert("Compared with recent prior."), require_comparison=True, max_comparison_weeks=4)
    recent = datetime.datetime.now(brisbane) - datetime.timedelta(weeks=4, hours=-1)
    old = datetime.datetime.now(brisbane) - datetime.timedelta(weeks=5, hours=1)

    text = "IMPRESSION: Stable."
    assert process_report(Report(text, "CT CHEST", recent), [rule]).applied_rule_ids == ("r1",)
    assert process_report(Report(text, "CT CHEST", old), [rule]).applied_rule_ids == ()
