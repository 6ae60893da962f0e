"""HR configuration module endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from workforce_payroll.api.dependencies import Container, require_permission, unwrap_result
from workforce_payroll.api.schemas import (
    ConfigModuleResponse,
    ConfigModuleUpdate,
    ErrorResponse,
)
from workforce_payroll.services.access import PERMISSION_APPROVAL_MANAGE, ActorContext

router = APIRouter(prefix="/config", tags=["config"])

ConfigManager = Annotated[ActorContext, Depends(require_permission(PERMISSION_APPROVAL_MANAGE))]


@router.get("/modules", response_model=list[ConfigModuleResponse])
async def list_config_modules(
    container: Container, actor: ConfigManager
) -> list[ConfigModuleResponse]:
    modules = await container.config.get_all_modules()
    return [ConfigModuleResponse.model_validate(m) for m in modules.values()]


@router.put(
    "/modules/{name}",
    response_model=ConfigModuleResponse,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def update_config_module(
    container: Container,
    actor: ConfigManager,
    name: Annotated[str, Path()],
    payload: ConfigModuleUpdate,
) -> ConfigModuleResponse:
    """Apply changes to one module; effective changes bump its version."""
    result = await container.config.update_module(
        name, payload.changes, actor.actor_id, payload.details
    )
    return ConfigModuleResponse.model_validate(unwrap_result(result))
