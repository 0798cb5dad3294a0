from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import UUID4

from matrimony.api.errors import to_http_exception
from matrimony.dependencies import CurrentUser, get_interest_workflow
from matrimony.models.interest import InterestStatus
from matrimony.schemas.requests import RespondInterestRequest, SendInterestRequest
from matrimony.schemas.responses import RespondInterestResponse
from matrimony.schemas.views import InterestView, to_public_view
from matrimony.services.errors import RelationshipError
from matrimony.services.interest import InterestWorkflow

router = APIRouter(prefix="/interests", tags=["interests"])

InterestWorkflowDep = Annotated[InterestWorkflow, Depends(get_interest_workflow)]


@router.post(
    "/user/{to_user_id}",
    response_model=InterestView,
    status_code=status.HTTP_201_CREATED,
)
async def send_interest(
    to_user_id: UUID4,
    current_user: CurrentUser,
    interests: InterestWorkflowDep,
    body: SendInterestRequest | None = None,
) -> InterestView:
    """Express interest in another user.

    Args:
        to_user_id: ID of the user to express interest in
        current_user: The authenticated user
        interests: Interest workflow
        body: Optional note for the recipient

    Returns:
        The pending interest

    Raises:
        HTTPException: If the interest cannot be sent
    """
    try:
        interest = await interests.send(
            current_user.user_id, to_user_id, body.message if body else None
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return to_public_view(interest)


@router.post("/{interest_id}/respond", response_model=RespondInterestResponse)
async def respond_to_interest(
    interest_id: UUID4,
    body: RespondInterestRequest,
    current_user: CurrentUser,
    interests: InterestWorkflowDep,
) -> RespondInterestResponse:
    """Accept or decline an interest sent to the current user.

    Args:
        interest_id: ID of the interest
        body: The decision
        current_user: The authenticated user
        interests: Interest workflow

    Returns:
        The updated interest, plus the connection if it was accepted

    Raises:
        HTTPException: If the interest cannot be answered
    """
    try:
        record = await interests.respond(
            interest_id, current_user.user_id, body.decision
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return RespondInterestResponse(
        interest=to_public_view(record.interest),
        connection=to_public_view(record.connection) if record.connection else None,
    )


@router.post("/{interest_id}/withdraw", response_model=InterestView)
async def withdraw_interest(
    interest_id: UUID4,
    current_user: CurrentUser,
    interests: InterestWorkflowDep,
) -> InterestView:
    """Withdraw a pending interest the current user sent.

    Raises:
        HTTPException: If the interest cannot be withdrawn
    """
    try:
        interest = await interests.withdraw(interest_id, current_user.user_id)
    except RelationshipError as e:
        raise to_http_exception(e)
    return to_public_view(interest)


@router.get("/received", response_model=list[InterestView])
async def get_received_interests(
    current_user: CurrentUser,
    interests: InterestWorkflowDep,
    interest_status: Annotated[InterestStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[InterestView]:
    """Get interests sent to the current user.

    Raises:
        HTTPException: If the store is unavailable
    """
    try:
        received = await interests.list_received(
            current_user.user_id, interest_status, limit, offset
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return [to_public_view(interest) for interest in received]


@router.get("/sent", response_model=list[InterestView])
async def get_sent_interests(
    current_user: CurrentUser,
    interests: InterestWorkflowDep,
    interest_status: Annotated[InterestStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[InterestView]:
    """Get interests the current user has sent.

    Raises:
        HTTPException: If the store is unavailable
    """
    try:
        sent = await interests.list_sent(
            current_user.user_id, interest_status, limit, offset
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return [to_public_view(interest) for interest in sent]
