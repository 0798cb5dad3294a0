from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import UUID4

from matrimony.api.errors import to_http_exception
from matrimony.dependencies import CurrentUser, get_connection_service
from matrimony.models.connection import ConnectionStatus
from matrimony.schemas.views import ConnectionView, to_public_view
from matrimony.services.connection import ConnectionService
from matrimony.services.errors import RelationshipError

router = APIRouter(prefix="/connections", tags=["connections"])

ConnectionServiceDep = Annotated[ConnectionService, Depends(get_connection_service)]


@router.get("", response_model=list[ConnectionView])
async def get_connections(
    current_user: CurrentUser,
    connections: ConnectionServiceDep,
    connection_status: Annotated[ConnectionStatus, Query(alias="status")] = (
        ConnectionStatus.ACTIVE
    ),
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[ConnectionView]:
    """Get the current user's connections, active ones by default.

    Raises:
        HTTPException: If the store is unavailable
    """
    try:
        found = await connections.get_connections(
            current_user.user_id, connection_status, limit, offset
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return [to_public_view(connection) for connection in found]


@router.get("/{connection_id}", response_model=ConnectionView)
async def get_connection(
    connection_id: UUID4,
    current_user: CurrentUser,
    connections: ConnectionServiceDep,
) -> ConnectionView:
    """Get one of the current user's connections.

    Raises:
        HTTPException: If the connection is not found
    """
    try:
        connection = await connections.get_connection(
            connection_id, current_user.user_id
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return to_public_view(connection)


@router.post("/{connection_id}/end", response_model=ConnectionView)
async def end_connection(
    connection_id: UUID4,
    current_user: CurrentUser,
    connections: ConnectionServiceDep,
) -> ConnectionView:
    """End one of the current user's connections.

    Raises:
        HTTPException: If the connection is not found or already ended
    """
    try:
        connection = await connections.end_connection(
            connection_id, current_user.user_id
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return to_public_view(connection)


@router.post("/{connection_id}/pause", response_model=ConnectionView)
async def pause_connection(
    connection_id: UUID4,
    current_user: CurrentUser,
    connections: ConnectionServiceDep,
) -> ConnectionView:
    try:
        connection = await connections.pause_connection(
            connection_id, current_user.user_id
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return to_public_view(connection)


@router.post("/{connection_id}/resume", response_model=ConnectionView)
async def resume_connection(
    connection_id: UUID4,
    current_user: CurrentUser,
    connections: ConnectionServiceDep,
) -> ConnectionView:
    try:
        connection = await connections.resume_connection(
            connection_id, current_user.user_id
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return to_public_view(connection)
