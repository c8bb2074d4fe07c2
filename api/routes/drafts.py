"""
Debounced item editing.

An editor sends its current payload to ``PUT /drafts/{type}/{id}`` on every
change; the auto-save engine collapses bursts into one write after the
configured delay. ``POST .../save`` writes immediately.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.dependencies import get_engine
from api.models import AutoSaveEntryOut, DraftStatus, DraftUpdate, SaveOutcomeOut
from autosave.engine import AutoSaveTask, item_entity_key
from engine import PlannerEngine
from utils.access import ItemTypeId

router = APIRouter(tags=["drafts"])


def _require_task(engine: PlannerEngine, item_type: ItemTypeId, item_id: str) -> AutoSaveTask:
    task = engine.autosave.get_task(item_entity_key(item_type, item_id))
    if task is None:
        raise HTTPException(status_code=404, detail=f"No open draft for {item_type.value} {item_id}")
    return task


@router.put(
    "/drafts/{item_type}/{item_id}",
    response_model=DraftStatus,
    summary="Submit the latest draft of an item",
)
async def put_draft(item_type: ItemTypeId, item_id: str, body: DraftUpdate,
                    engine: PlannerEngine = Depends(get_engine)) -> DraftStatus:
    try:
        task = engine.autosave.bind_item(item_type, item_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No {item_type.value} item {item_id}")
    engine.autosave.update(task.entity_key, body.draft)
    return DraftStatus(**task.status())


@router.get(
    "/drafts/{item_type}/{item_id}",
    response_model=DraftStatus,
    summary="Auto-save status of an item draft",
)
async def get_draft(item_type: ItemTypeId, item_id: str,
                    engine: PlannerEngine = Depends(get_engine)) -> DraftStatus:
    return DraftStatus(**_require_task(engine, item_type, item_id).status())


@router.post(
    "/drafts/{item_type}/{item_id}/save",
    response_model=SaveOutcomeOut,
    summary="Save the latest draft now",
)
async def save_draft(item_type: ItemTypeId, item_id: str,
                     engine: PlannerEngine = Depends(get_engine)) -> SaveOutcomeOut:
    task = _require_task(engine, item_type, item_id)
    outcome = await engine.autosave.force_save(task.entity_key)
    return SaveOutcomeOut(status=outcome.status.value, error=outcome.error,
                          saved_at=outcome.saved_at, task=DraftStatus(**task.status()))


@router.delete(
    "/drafts/{item_type}/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Close a draft, discarding unsaved edits",
)
async def close_draft(item_type: ItemTypeId, item_id: str,
                      engine: PlannerEngine = Depends(get_engine)) -> Response:
    _require_task(engine, item_type, item_id)
    engine.autosave.close(item_entity_key(item_type, item_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/autosave/recent",
    response_model=list[AutoSaveEntryOut],
    summary="Recently auto-saved items, newest first",
)
async def recent_autosaves(engine: PlannerEngine = Depends(get_engine)) -> list[AutoSaveEntryOut]:
    return [AutoSaveEntryOut(**entry) for entry in reversed(engine.ledger.entries())]
