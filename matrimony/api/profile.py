from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Path, status
from fastapi.exceptions import RequestValidationError
from pydantic import UUID4, ValidationError

from matrimony.api.errors import to_http_exception
from matrimony.dependencies import CurrentUser, get_gatekeeper, get_profile_service
from matrimony.models.profile import Profile
from matrimony.models.user import Account, ProfileStage
from matrimony.schemas.profile import STAGE_SCHEMAS, ProfileUpdate
from matrimony.schemas.responses import GateStatusResponse
from matrimony.schemas.views import PublicProfileView, to_public_view
from matrimony.services.errors import RelationshipError
from matrimony.services.gatekeeper import GateKeeper
from matrimony.services.profile import ProfileService
from matrimony.services.scoring import ProfileScore

router = APIRouter(prefix="/profile", tags=["profile"])

ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]
GateKeeperDep = Annotated[GateKeeper, Depends(get_gatekeeper)]


async def _gate_status(gatekeeper: GateKeeper, account: Account) -> GateStatusResponse:
    return GateStatusResponse(
        profile_stage=account.profile_stage,
        minimal_profile_completion=account.minimal_profile_completion,
        can_use_relationships=await gatekeeper.can_use_relationships(account.user_id),
    )


@router.post("", response_model=Profile, status_code=status.HTTP_201_CREATED)
async def create_profile(
    current_user: CurrentUser,
    profile_service: ProfileServiceDep,
    data: ProfileUpdate | None = None,
) -> Profile:
    """Create the current user's profile.

    Args:
        current_user: The authenticated user
        profile_service: Profile service
        data: Optional initial values

    Returns:
        The created profile

    Raises:
        HTTPException: If the user already has a profile
    """
    try:
        return await profile_service.create_profile(current_user.user_id, data)
    except RelationshipError as e:
        raise to_http_exception(e)


@router.get("/me", response_model=Profile)
async def get_my_profile(
    current_user: CurrentUser, profile_service: ProfileServiceDep
) -> Profile:
    """Get the current user's full profile.

    Raises:
        HTTPException: If profile not found
    """
    try:
        return await profile_service.get_profile(current_user.user_id)
    except RelationshipError as e:
        raise to_http_exception(e)


@router.patch("/me", response_model=Profile)
async def update_my_profile(
    update: ProfileUpdate,
    current_user: CurrentUser,
    profile_service: ProfileServiceDep,
) -> Profile:
    """Edit fields of the current user's profile.

    Raises:
        HTTPException: If profile not found
    """
    try:
        return await profile_service.update_profile(current_user.user_id, update)
    except RelationshipError as e:
        raise to_http_exception(e)


@router.get("/me/completion", response_model=ProfileScore)
async def get_profile_completion(
    current_user: CurrentUser, profile_service: ProfileServiceDep
) -> ProfileScore:
    """Get the completion score and missing fields of the current user's profile.

    Raises:
        HTTPException: If profile not found
    """
    try:
        return await profile_service.get_profile_completion(current_user.user_id)
    except RelationshipError as e:
        raise to_http_exception(e)


@router.get("/me/gate", response_model=GateStatusResponse)
async def get_gate_status(
    current_user: CurrentUser, gatekeeper: GateKeeperDep
) -> GateStatusResponse:
    """Get the current user's stage and whether relationship features are open.

    Raises:
        HTTPException: If the user has no account
    """
    try:
        account = await gatekeeper.get_account(current_user.user_id)
        return await _gate_status(gatekeeper, account)
    except RelationshipError as e:
        raise to_http_exception(e)


@router.put("/stage/{stage}", response_model=Profile)
async def save_profile_stage(
    stage: Annotated[int, Path(ge=ProfileStage.BASIC, le=ProfileStage.MEDIA)],
    payload: Annotated[dict[str, Any], Body()],
    current_user: CurrentUser,
    profile_service: ProfileServiceDep,
    gatekeeper: GateKeeperDep,
) -> Profile:
    """Save one stage of the staged profile editor.

    Stage access is checked before the payload is validated.

    Args:
        stage: Stage number, 1 to 4
        payload: Fields of that stage
        current_user: The authenticated user
        profile_service: Profile service
        gatekeeper: Gate keeper

    Returns:
        The updated profile

    Raises:
        HTTPException: If the payload is invalid for the stage or the stage
            is not open to the user
    """
    profile_stage = ProfileStage(stage)
    try:
        await gatekeeper.can_advance_stage(current_user.user_id, profile_stage)
    except RelationshipError as e:
        raise to_http_exception(e)

    try:
        validated = STAGE_SCHEMAS[profile_stage].model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))

    try:
        return await profile_service.update_stage(
            current_user.user_id, profile_stage, validated
        )
    except RelationshipError as e:
        raise to_http_exception(e)


@router.post("/submit", response_model=GateStatusResponse)
async def submit_initial_profile(
    current_user: CurrentUser, gatekeeper: GateKeeperDep
) -> GateStatusResponse:
    """Submit the staged profile and open relationship features.

    Raises:
        HTTPException: If a required field is missing
    """
    try:
        account = await gatekeeper.submit_initial_profile(current_user.user_id)
        return await _gate_status(gatekeeper, account)
    except RelationshipError as e:
        raise to_http_exception(e)


@router.post("/skip", response_model=GateStatusResponse)
async def skip_profile_stages(
    current_user: CurrentUser, gatekeeper: GateKeeperDep
) -> GateStatusResponse:
    """Skip the remaining optional stages.

    Raises:
        HTTPException: If the user has not reached stage 3
    """
    try:
        account = await gatekeeper.skip_profile_stages(current_user.user_id)
        return await _gate_status(gatekeeper, account)
    except RelationshipError as e:
        raise to_http_exception(e)


@router.get("/{user_id}", response_model=PublicProfileView)
async def get_profile(
    user_id: UUID4,
    current_user: CurrentUser,
    profile_service: ProfileServiceDep,
) -> PublicProfileView:
    """Get another user's public profile.

    Args:
        user_id: ID of the user whose profile to get
        current_user: The authenticated user
        profile_service: Profile service

    Returns:
        The public view of the profile

    Raises:
        HTTPException: If the profile does not exist or is hidden
    """
    try:
        profile = await profile_service.get_public_profile(
            current_user.user_id, user_id
        )
    except RelationshipError as e:
        raise to_http_exception(e)
    return to_public_view(profile)
