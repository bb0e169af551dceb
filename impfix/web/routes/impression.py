"""Impression extraction endpoints."""

import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from impfix.fixers.pipeline import process_report
from impfix.fixers.serialization import FixerRuleRecord, record_to_rule
from impfix.impression.extractor import Report, extract_impression
from impfix.rule_store import RuleStore, get_rule_store

router = APIRouter(prefix="/api")


class ExtractRequest(BaseModel):
    report_text: str = ""


class ProcessRequest(BaseModel):
    report_text: str = ""
    study_description: str | None = None
    comparison_date: datetime.datetime | datetime.date | None = None
    now: datetime.datetime | None = None
    # Inline rules take the place of the stored ones
    rules: list[FixerRuleRecord] | None = None


@router.post("/extract")
def extract(body: ExtractRequest):
    result = extract_impression(body.report_text)
    return {"impression": result.text, "empty": result.empty}


@router.post("/process")
def process(body: ProcessRequest, store: RuleStore = Depends(get_rule_store)):
    if body.rules is not None:
        rules = [record_to_rule(r) for r in body.rules]
    else:
        rules = store.rules()

    result = process_report(
        Report(
            text=body.report_text,
            study_description=body.study_description,
            comparison_date=body.comparison_date,
        ),
        rules,
        now=body.now,
    )
    return {
        "impression": result.text,
        "extracted": result.extracted,
        "empty": result.empty,
        "applied_rule_ids": list(result.applied_rule_ids),
    }
