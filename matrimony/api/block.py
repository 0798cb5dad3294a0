from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import UUID4

from matrimony.api.errors import to_http_exception
from matrimony.dependencies import CurrentUser, get_block_workflow
from matrimony.schemas.requests import BlockRequest
from matrimony.schemas.responses import BlockResponse
from matrimony.schemas.views import BlockView, to_public_view
from matrimony.services.block import BlockWorkflow
from matrimony.services.errors import RelationshipError

router = APIRouter(prefix="/block", tags=["block"])

BlockWorkflowDep = Annotated[BlockWorkflow, Depends(get_block_workflow)]


@router.post(
    "/user/{target_id}",
    response_model=BlockResponse,
    status_code=status.HTTP_201_CREATED,
)
async def block_user(
    target_id: UUID4,
    current_user: CurrentUser,
    blocks: BlockWorkflowDep,
    body: BlockRequest | None = None,
) -> BlockResponse:
    """Block a user.

    Args:
        target_id: ID of the user to block
        current_user: The authenticated user
        blocks: Block workflow
        body: Optional reason

    Returns:
        The created block and what it changed

    Raises:
        HTTPException: If block creation fails
    """
    try:
        record = await blocks.block(
            current_user.user_id, target_id, body.reason if body else None
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return BlockResponse(
        block=to_public_view(record.block),
        connection_ended=record.ended_connection is not None,
        interests_withdrawn=len(record.withdrawn_interests),
    )


@router.delete("/user/{target_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_user(
    target_id: UUID4,
    current_user: CurrentUser,
    blocks: BlockWorkflowDep,
) -> None:
    """Unblock a user.

    Args:
        target_id: ID of the user to unblock
        current_user: The authenticated user
        blocks: Block workflow

    Raises:
        HTTPException: If the block does not exist
    """
    try:
        await blocks.unblock(current_user.user_id, target_id)
    except RelationshipError as e:
        raise to_http_exception(e)


@router.get("/blocked", response_model=list[BlockView])
async def get_blocked_users(
    current_user: CurrentUser,
    blocks: BlockWorkflowDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[BlockView]:
    """Get the users the current user has blocked.

    Args:
        current_user: The authenticated user
        blocks: Block workflow
        limit: Maximum number of blocks to return
        offset: Number of blocks to skip

    Returns:
        List of blocks made by the current user

    Raises:
        HTTPException: If the store is unavailable
    """
    try:
        found = await blocks.get_blocked_users(
            current_user.user_id, limit=limit, offset=offset
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return [to_public_view(block) for block in found]


@router.get("/check/{target_id}", response_model=bool)
async def check_block_status(
    target_id: UUID4,
    current_user: CurrentUser,
    blocks: BlockWorkflowDep,
) -> bool:
    """Check if a block exists between the current user and another user.

    Args:
        target_id: ID of the user to check
        current_user: The authenticated user
        blocks: Block workflow

    Returns:
        True if either user has blocked the other, False otherwise

    Raises:
        HTTPException: If check fails
    """
    try:
        return await blocks.is_blocked(current_user.user_id, target_id)
    except RelationshipError as e:
        raise to_http_exception(e)
