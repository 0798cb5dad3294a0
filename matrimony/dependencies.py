from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from matrimony.models.user import AuthenticatedUser
from matrimony.services.auth import (
    AuthService,
    InvalidTokenError,
    TokenExpiredError,
    TokenRevokedError,
)
from matrimony.services.block import BlockWorkflow
from matrimony.services.connection import ConnectionService
from matrimony.services.errors import RelationshipStoreUnavailableError
from matrimony.services.gatekeeper import GateKeeper
from matrimony.services.interest import InterestWorkflow
from matrimony.services.notification import (
    NotificationService,
    NotificationSink,
    StoreNotificationSink,
)
from matrimony.services.profile import ProfileService
from matrimony.services.store import RelationshipStore
from matrimony.services.token_denylist import TokenDenylist

security = HTTPBearer()


def get_store(request: Request) -> RelationshipStore:
    """Get the relationship store opened by the application lifespan."""
    return request.app.state.store


StoreDep = Annotated[RelationshipStore, Depends(get_store)]


def get_gatekeeper(store: StoreDep) -> GateKeeper:
    return GateKeeper(store)


def get_notification_sink(store: StoreDep) -> NotificationSink:
    return StoreNotificationSink(store)


def get_profile_service(
    store: StoreDep, gatekeeper: Annotated[GateKeeper, Depends(get_gatekeeper)]
) -> ProfileService:
    return ProfileService(store, gatekeeper)


def get_interest_workflow(
    store: StoreDep,
    gatekeeper: Annotated[GateKeeper, Depends(get_gatekeeper)],
    sink: Annotated[NotificationSink, Depends(get_notification_sink)],
) -> InterestWorkflow:
    return InterestWorkflow(store, gatekeeper, sink)


def get_block_workflow(
    store: StoreDep, gatekeeper: Annotated[GateKeeper, Depends(get_gatekeeper)]
) -> BlockWorkflow:
    return BlockWorkflow(store, gatekeeper)


def get_connection_service(store: StoreDep) -> ConnectionService:
    return ConnectionService(store)


def get_notification_service(store: StoreDep) -> NotificationService:
    return NotificationService(store)


def get_token_denylist(store: StoreDep) -> TokenDenylist:
    return TokenDenylist(store)


def get_auth_service(
    denylist: Annotated[TokenDenylist, Depends(get_token_denylist)],
) -> AuthService:
    return AuthService(denylist)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthenticatedUser:
    """Dependency for getting the current authenticated user.

    This dependency validates the bearer token, rejects revoked tokens and
    returns the caller's identity. Use this to protect routes that require
    authentication.

    Args:
        credentials: The HTTP Authorization header credentials
        auth_service: Service validating the token

    Returns:
        The authenticated user

    Raises:
        HTTPException: If authentication fails
    """
    try:
        return await auth_service.get_current_user(credentials.credentials)
    except (InvalidTokenError, TokenExpiredError, TokenRevokedError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except RelationshipStoreUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
