from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import pytest
from memory_store import MemoryRelationshipStore
from pydantic import UUID4

from matrimony.config import Settings
from matrimony.models.profile import Education, MaritalStatus, MotherTongue, Profile
from matrimony.models.user import Account, ProfileStage
from matrimony.services.auth import AuthService
from matrimony.services.block import BlockWorkflow
from matrimony.services.connection import ConnectionService
from matrimony.services.gatekeeper import GateKeeper
from matrimony.services.interest import InterestWorkflow
from matrimony.services.notification import NotificationService, StoreNotificationSink
from matrimony.services.profile import ProfileService, apply_changes
from matrimony.services.token_denylist import TokenDenylist

TEST_JWT_SECRET = "test-secret"

BASIC_FIELDS: dict[str, Any] = {
    "marital_status": MaritalStatus.SINGLE,
    "education": Education.BACHELORS,
    "occupation": "Software Engineer",
    "height": 172,
    "mother_tongue": MotherTongue.SINHALA,
}


# Store fixtures
@pytest.fixture
def store() -> MemoryRelationshipStore:
    return MemoryRelationshipStore()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(JWT_SECRET=TEST_JWT_SECRET, JWT_AUDIENCE=None)


# Service fixtures
@pytest.fixture
def gatekeeper(store: MemoryRelationshipStore) -> GateKeeper:
    return GateKeeper(store, min_completion=25)


@pytest.fixture
def notification_sink(store: MemoryRelationshipStore) -> StoreNotificationSink:
    return StoreNotificationSink(store)


@pytest.fixture
def interest_workflow(
    store: MemoryRelationshipStore,
    gatekeeper: GateKeeper,
    notification_sink: StoreNotificationSink,
) -> InterestWorkflow:
    return InterestWorkflow(store, gatekeeper, notification_sink)


@pytest.fixture
def block_workflow(
    store: MemoryRelationshipStore, gatekeeper: GateKeeper
) -> BlockWorkflow:
    return BlockWorkflow(store, gatekeeper)


@pytest.fixture
def connection_service(store: MemoryRelationshipStore) -> ConnectionService:
    return ConnectionService(store)


@pytest.fixture
def notification_service(store: MemoryRelationshipStore) -> NotificationService:
    return NotificationService(store)


@pytest.fixture
def profile_service(
    store: MemoryRelationshipStore, gatekeeper: GateKeeper
) -> ProfileService:
    return ProfileService(store, gatekeeper)


@pytest.fixture
def token_denylist(store: MemoryRelationshipStore) -> TokenDenylist:
    return TokenDenylist(store)


@pytest.fixture
def auth_service(
    token_denylist: TokenDenylist, test_settings: Settings
) -> AuthService:
    return AuthService(token_denylist, config=test_settings)


# Test data fixtures
@pytest.fixture
def make_user(
    store: MemoryRelationshipStore,
) -> Callable[..., UUID4]:
    """Factory seeding an account and profile straight into the store.

    By default the user has filled the basic stage and passed the gate.
    """

    def _make_user(
        *,
        gate_passed: bool = True,
        profile_stage: ProfileStage = ProfileStage.COMPLETED,
        with_profile: bool = True,
        **fields: Any,
    ) -> UUID4:
        user_id = uuid4()
        now = datetime.now(UTC)
        store.seed(
            "accounts",
            user_id,
            Account(
                user_id=user_id,
                profile_stage=profile_stage,
                minimal_profile_completion=gate_passed,
                created_at=now,
            ),
        )
        if with_profile:
            blank = Profile(
                profile_id=uuid4(), user_id=user_id, created_at=now, updated_at=now
            )
            profile = apply_changes(blank, {**BASIC_FIELDS, **fields}, now)
            store.seed("profiles", profile.profile_id, profile)
        return user_id

    return _make_user


@pytest.fixture
def test_user_id(make_user: Callable[..., UUID4]) -> UUID4:
    return make_user()


@pytest.fixture
def another_test_user_id(make_user: Callable[..., UUID4]) -> UUID4:
    return make_user()


@pytest.fixture
def third_test_user_id(make_user: Callable[..., UUID4]) -> UUID4:
    return make_user()
