from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from matrimony.api.errors import to_http_exception
from matrimony.dependencies import CurrentUser, get_auth_service
from matrimony.models.user import AuthenticatedUser
from matrimony.services.auth import AuthService, InvalidTokenError
from matrimony.services.errors import RelationshipError

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=AuthenticatedUser)
async def get_me(current_user: CurrentUser) -> AuthenticatedUser:
    """Get the identity carried by the caller's token."""
    return current_user


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    current_user: CurrentUser,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> None:
    """Revoke the token used for this request.

    Raises:
        HTTPException: If the token cannot be revoked
    """
    try:
        await auth_service.logout(current_user)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except RelationshipError as e:
        raise to_http_exception(e)
