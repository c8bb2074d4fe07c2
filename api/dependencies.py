"""
Request dependencies for the API.

The ``PlannerEngine`` is created once per application (in ``create_app`` or
its lifespan) and stored on ``app.state``; routes receive it through
``Depends(get_engine)``.
"""

from fastapi import Depends, HTTPException, Request

from engine import PlannerEngine
from plugins.base import ItemPlugin
from utils.access import ItemTypeId


def get_engine(request: Request) -> PlannerEngine:
    """FastAPI dependency returning the application's engine."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialised")
    return engine


def get_plugin(item_type: ItemTypeId, engine: PlannerEngine = Depends(get_engine)) -> ItemPlugin:
    """Resolve the ``{item_type}`` path parameter to its plugin."""
    plugin = engine.registry.get_plugin(item_type)
    if plugin is None:
        raise HTTPException(status_code=404, detail=f"No plugin for item type {item_type.value}")
    return plugin
