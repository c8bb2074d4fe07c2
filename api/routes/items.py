"""
Saved item endpoints, one collection per item type.

``{item_type}`` is one of countdown, budget, packing or itinerary; every
operation is dispatched to that type's plugin.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.dependencies import get_engine, get_plugin
from api.models import ItemCreate, ItemCreated
from engine import PlannerEngine
from plugins.base import ItemPlugin

router = APIRouter(prefix="/items", tags=["items"])


def _require_item(plugin: ItemPlugin, item_id: str):
    item = plugin.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"No {plugin.id.value} item {item_id}")
    return item


@router.get(
    "/{item_type}",
    response_model=list[dict[str, Any]],
    summary="List saved items of one type",
)
async def list_items(plugin: ItemPlugin = Depends(get_plugin)) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json") for item in plugin.list_items()]


@router.post(
    "/{item_type}",
    status_code=status.HTTP_201_CREATED,
    response_model=ItemCreated,
    responses={403: {"description": "Item type not available to this user"}},
    summary="Create an item with default content",
    description="If a widget of this type is waiting for an item, the new item is bound to it.",
)
async def create_item(body: ItemCreate, plugin: ItemPlugin = Depends(get_plugin),
                      engine: PlannerEngine = Depends(get_engine)) -> ItemCreated:
    if not engine.can_access(plugin.capability):
        raise HTTPException(status_code=403, detail=f"{plugin.display_name} requires a higher tier")
    item_id = plugin.create_default_item(body.name)
    linked = engine.widgets.check_and_apply_pending_links(item_id, plugin.id)
    item = _require_item(plugin, item_id)
    return ItemCreated(id=item_id, item=item.model_dump(mode="json"), linked_widget_id=linked)


@router.delete(
    "/{item_type}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete every item of one type",
)
async def clear_items(plugin: ItemPlugin = Depends(get_plugin)) -> Response:
    result = plugin.clear_items()
    if not result.ok:
        raise HTTPException(status_code=503, detail=result.error)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{item_type}/{item_id}",
    response_model=dict[str, Any],
    summary="Get one item",
)
async def get_item(item_id: str, plugin: ItemPlugin = Depends(get_plugin)) -> dict[str, Any]:
    return _require_item(plugin, item_id).model_dump(mode="json")


@router.patch(
    "/{item_type}/{item_id}",
    response_model=dict[str, Any],
    summary="Update an item immediately",
    description="Shallow-merges the body into the item. Use the drafts endpoints for debounced edits.",
)
async def update_item(item_id: str, body: dict[str, Any],
                      plugin: ItemPlugin = Depends(get_plugin)) -> dict[str, Any]:
    _require_item(plugin, item_id)
    result = plugin.update_item(item_id, body)
    if not result.ok:
        raise HTTPException(status_code=503, detail=result.error)
    return _require_item(plugin, item_id).model_dump(mode="json")


@router.delete(
    "/{item_type}/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an item",
    description="Widgets showing the item are unbound and its pending auto-save is dropped.",
)
async def delete_item(item_id: str, plugin: ItemPlugin = Depends(get_plugin)) -> Response:
    _require_item(plugin, item_id)
    result = plugin.delete_item(item_id)
    if not result.ok:
        raise HTTPException(status_code=503, detail=result.error)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{item_type}/{item_id}/widget-data",
    response_model=dict[str, Any],
    summary="Render data for an item",
)
async def item_widget_data(item_id: str, plugin: ItemPlugin = Depends(get_plugin)) -> dict[str, Any]:
    data = plugin.get_widget_data_for_binding("", item_id)
    if data is None:
        raise HTTPException(status_code=404, detail=f"No {plugin.id.value} item {item_id}")
    return data
