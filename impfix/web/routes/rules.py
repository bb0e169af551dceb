"""Fixer rule editing endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from impfix.fixers.serialization import FixerRuleRecord, RuleFormatError
from impfix.rule_store import RuleNotFoundError, RuleStore, get_rule_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rules")


def _dump(record: FixerRuleRecord) -> dict:
    return record.model_dump(by_alias=True)


@router.get("")
def list_rules(store: RuleStore = Depends(get_rule_store)):
    return [_dump(r) for r in store.list_records()]


@router.post("", status_code=201)
def add_rule(record: FixerRuleRecord, store: RuleStore = Depends(get_rule_store)):
    return _dump(store.add(record))


@router.get("/backup")
def backup(store: RuleStore = Depends(get_rule_store)):
    return Response(
        content=store.backup(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="ImpressionFixers_Backup.json"'},
    )


@router.post("/restore")
async def restore(request: Request, store: RuleStore = Depends(get_rule_store)):
    raw = await request.body()
    try:
        added = store.restore(raw)
    except RuleFormatError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"status": "ok", "imported": len(added), "ids": [r.id for r in added]}


@router.get("/{rule_id}")
def get_rule(rule_id: str, store: RuleStore = Depends(get_rule_store)):
    try:
        return _dump(store.get(rule_id))
    except RuleNotFoundError:
        raise HTTPException(status_code=404, detail="Fixer rule not found")


@router.put("/{rule_id}")
def update_rule(rule_id: str, record: FixerRuleRecord, store: RuleStore = Depends(get_rule_store)):
    try:
        return _dump(store.update(rule_id, record))
    except RuleNotFoundError:
        raise HTTPException(status_code=404, detail="Fixer rule not found")


@router.delete("/{rule_id}")
def delete_rule(rule_id: str, store: RuleStore = Depends(get_rule_store)):
    try:
        store.delete(rule_id)
    except RuleNotFoundError:
        raise HTTPException(status_code=404, detail="Fixer rule not found")
    return {"status": "ok"}


@router.post("/{rule_id}/move")
def move_rule(
    rule_id: str,
    offset: int = Query(..., description="Places to move; negative moves earlier"),
    store: RuleStore = Depends(get_rule_store),
):
    try:
        index = store.move(rule_id, offset)
    except RuleNotFoundError:
        raise HTTPException(status_code=404, detail="Fixer rule not found")
    return {"status": "ok", "position": index}


@router.post("/{rule_id}/toggle")
def toggle_rule(rule_id: str, store: RuleStore = Depends(get_rule_store)):
    try:
        enabled = store.toggle(rule_id)
    except RuleNotFoundError:
        raise HTTPException(status_code=404, detail="Fixer rule not found")
    logger.info("Fixer rule '%s' %s", rule_id, "enabled" if enabled else "disabled")
    return {"status": "ok", "enabled": enabled}


@router.post("/{rule_id}/clone", status_code=201)
def clone_rule(rule_id: str, store: RuleStore = Depends(get_rule_store)):
    try:
        return _dump(store.clone(rule_id))
    except RuleNotFoundError:
        raise HTTPException(status_code=404, detail="Fixer rule not found")
