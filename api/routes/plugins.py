"""Item type catalogue."""

from fastapi import APIRouter, Depends

from api.dependencies import get_engine
from api.models import PluginOut
from engine import PlannerEngine

router = APIRouter(prefix="/plugins", tags=["plugins"])


@router.get(
    "",
    response_model=list[PluginOut],
    summary="List item types in registration order",
)
async def list_plugins(engine: PlannerEngine = Depends(get_engine)) -> list[PluginOut]:
    return [
        PluginOut(**plugin.describe(), available=engine.can_access(plugin.capability))
        for plugin in engine.registry.get_all_plugins()
    ]
