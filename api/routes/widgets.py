"""
Widget layout endpoints.

The dashboard reads the ordered layout, adds and removes widgets, reorders
them and binds each one to a saved item of its type.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.dependencies import get_engine
from api.models import (
    WidgetCreate,
    WidgetDataOut,
    WidgetLinkOut,
    WidgetLinkRequest,
    WidgetOrder,
    WidgetUpdate,
)
from engine import PlannerEngine
from widgets.models import WidgetInstance

router = APIRouter(prefix="/widgets", tags=["widgets"])


def _require_widget(engine: PlannerEngine, widget_id: str) -> WidgetInstance:
    config = engine.widgets.get_config(widget_id)
    if config is None:
        raise HTTPException(status_code=404, detail=f"Widget {widget_id} not found")
    return config


def _storage_unavailable(action: str) -> HTTPException:
    return HTTPException(status_code=503, detail=f"Widget layout could not be saved ({action})")


@router.get(
    "",
    response_model=list[WidgetInstance],
    summary="List widgets in dashboard order",
)
async def list_widgets(engine: PlannerEngine = Depends(get_engine)) -> list[WidgetInstance]:
    return engine.widgets.get_configs()


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=WidgetInstance,
    responses={403: {"description": "Item type not available to this user"}},
    summary="Add a widget at the end of the dashboard",
)
async def create_widget(body: WidgetCreate,
                        engine: PlannerEngine = Depends(get_engine)) -> WidgetInstance:
    plugin = engine.registry.require(body.type)
    if not engine.can_access(plugin.capability):
        raise HTTPException(status_code=403, detail=f"{plugin.display_name} requires a higher tier")
    widget = engine.widgets.create_widget(body.type, size=body.size, settings=body.settings)
    if widget is None:
        raise _storage_unavailable("add")
    return widget


@router.put(
    "/order",
    response_model=list[WidgetInstance],
    responses={400: {"description": "Order is not a permutation of the current widgets"}},
    summary="Reorder widgets",
)
async def reorder_widgets(body: WidgetOrder,
                          engine: PlannerEngine = Depends(get_engine)) -> list[WidgetInstance]:
    return engine.widgets.reorder_widgets(body.widget_ids)


@router.get(
    "/{widget_id}",
    response_model=WidgetDataOut,
    summary="Get a widget with its render data",
    description="A dangling item reference is cleared before the widget is returned.",
)
async def get_widget(widget_id: str,
                     engine: PlannerEngine = Depends(get_engine)) -> WidgetDataOut:
    _require_widget(engine, widget_id)
    engine.widgets.validate_and_cleanup_item_reference(widget_id)
    widget = _require_widget(engine, widget_id)
    return WidgetDataOut(widget=widget, data=engine.widgets.get_selected_item_data(widget_id))


@router.patch(
    "/{widget_id}",
    response_model=WidgetInstance,
    summary="Update widget size, width, settings or bound item",
)
async def update_widget(widget_id: str, body: WidgetUpdate,
                        engine: PlannerEngine = Depends(get_engine)) -> WidgetInstance:
    _require_widget(engine, widget_id)
    updated = engine.widgets.update_config(widget_id, body.model_dump(exclude_unset=True))
    if updated is None:
        raise _storage_unavailable("update")
    return updated


@router.delete(
    "/{widget_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a widget",
)
async def delete_widget(widget_id: str, engine: PlannerEngine = Depends(get_engine)) -> Response:
    _require_widget(engine, widget_id)
    if not engine.widgets.remove_config(widget_id):
        raise _storage_unavailable("remove")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{widget_id}/link",
    response_model=WidgetLinkOut,
    summary="Bind a widget to an item",
)
async def link_widget(widget_id: str, body: WidgetLinkRequest,
                      engine: PlannerEngine = Depends(get_engine)) -> WidgetLinkOut:
    widget = _require_widget(engine, widget_id)
    if body.item_id is not None:
        updated = engine.widgets.update_config(widget_id, {"selected_item_id": body.item_id})
        if updated is None:
            raise _storage_unavailable("link")
        return WidgetLinkOut(widget=updated, item_id=body.item_id)
    if body.pending:
        if not engine.widgets.set_pending_link(widget_id, widget.type):
            raise _storage_unavailable("pending link")
        return WidgetLinkOut(widget=widget, pending=True)
    item_id = engine.widgets.create_and_link_item(widget_id, body.name)
    if item_id is None:
        raise _storage_unavailable("create and link")
    return WidgetLinkOut(widget=engine.widgets.get_config(widget_id), item_id=item_id)
