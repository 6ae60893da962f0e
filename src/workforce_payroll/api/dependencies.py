"""FastAPI dependencies for dependency injection."""

from typing import Annotated, Callable, TypeVar

from fastapi import Depends, Header, HTTPException, Request, status

from workforce_payroll.container import ServiceContainer
from workforce_payroll.errors import (
    AuthorizationError,
    NotFoundError,
    OperationResult,
    StateError,
    ValidationError,
)
from workforce_payroll.services.access import ActorContext

T = TypeVar("T")

# First match wins; ConcurrencyConflictError is a StateError.
ERROR_STATUS_CODES: tuple[tuple[type[Exception], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (StateError, status.HTTP_409_CONFLICT),
)


def get_container(request: Request) -> ServiceContainer:
    """Service container attached to the application."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is not initialized",
        )
    return container


async def get_actor(
    x_actor_id: Annotated[str | None, Header()] = None,
    x_actor_name: Annotated[str | None, Header()] = None,
    x_actor_permissions: Annotated[str | None, Header()] = None,
) -> ActorContext:
    """Build the calling actor from identity headers set by the gateway."""
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id header is required",
        )
    return ActorContext.from_claims(x_actor_id, x_actor_name, x_actor_permissions)


def require_permission(permission: str) -> Callable[[ActorContext], ActorContext]:
    """Dependency factory rejecting actors without ``permission``."""

    def dependency(actor: Annotated[ActorContext, Depends(get_actor)]) -> ActorContext:
        if not actor.has(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission}",
            )
        return actor

    return dependency


def unwrap_result(result: OperationResult[T]) -> T:
    """Return the operation value or raise the matching HTTP error."""
    if result.ok:
        return result.value  # type: ignore[return-value]
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in ERROR_STATUS_CODES:
        if isinstance(result.error, error_type):
            status_code = code
            break
    raise HTTPException(
        status_code=status_code,
        detail=result.message or "Operation failed",
        headers={"X-Error-Code": result.error_code or "error"},
    )


# Type aliases for cleaner dependency injection
Container = Annotated[ServiceContainer, Depends(get_container)]
Actor = Annotated[ActorContext, Depends(get_actor)]
