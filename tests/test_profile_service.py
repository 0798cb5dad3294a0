from collections.abc import Callable
from uuid import uuid4

import pytest
from memory_store import MemoryRelationshipStore
from pydantic import UUID4, ValidationError

from matrimony.models.profile import (
    DietaryPreference,
    Education,
    MaritalStatus,
    MotherTongue,
    WorkLocation,
)
from matrimony.models.user import ProfileStage
from matrimony.schemas.profile import (
    BasicProfileStage,
    LifestyleProfileStage,
    PersonalProfileStage,
    ProfileUpdate,
)
from matrimony.services.block import BlockWorkflow
from matrimony.services.errors import (
    InsufficientProgressError,
    ProfileExistsError,
    ProfileNotFoundError,
    StageAccessDeniedError,
)
from matrimony.services.gatekeeper import GateKeeper
from matrimony.services.profile import ProfileService

BASIC_STAGE = BasicProfileStage(
    marital_status=MaritalStatus.SINGLE,
    education=Education.MASTERS,
    occupation="Architect",
    height=168,
    mother_tongue=MotherTongue.ENGLISH,
)


@pytest.mark.unit
class TestProfileService:
    @pytest.mark.asyncio
    async def test_create_profile_creates_account(
        self,
        profile_service: ProfileService,
        gatekeeper: GateKeeper,
    ):
        # Arrange
        user_id = uuid4()

        # Act
        profile = await profile_service.create_profile(user_id)

        # Assert
        assert profile.user_id == user_id
        assert profile.completion_percentage == 0
        account = await gatekeeper.get_account(user_id)
        assert account.profile_stage == ProfileStage.BASIC
        assert account.minimal_profile_completion is False

    @pytest.mark.asyncio
    async def test_create_profile_with_initial_values_scores_them(
        self, profile_service: ProfileService
    ):
        # Act
        profile = await profile_service.create_profile(
            uuid4(), ProfileUpdate(**BASIC_STAGE.model_dump())
        )

        # Assert
        assert profile.completion_percentage == 25
        assert profile.is_complete is False

    @pytest.mark.asyncio
    async def test_create_profile_twice_fails(
        self, profile_service: ProfileService
    ):
        # Arrange
        user_id = uuid4()
        await profile_service.create_profile(user_id)

        # Act & Assert
        with pytest.raises(ProfileExistsError):
            await profile_service.create_profile(user_id)

    @pytest.mark.asyncio
    async def test_update_profile_recomputes_completion(
        self, profile_service: ProfileService, test_user_id: UUID4
    ):
        # Act
        profile = await profile_service.update_profile(
            test_user_id,
            ProfileUpdate(
                primary_photo_url="https://cdn.example.com/me.jpg",
                profile_photos=["https://cdn.example.com/me2.jpg"],
            ),
        )

        # Assert
        assert profile.completion_percentage == 50
        assert profile.occupation == "Software Engineer"

    @pytest.mark.asyncio
    async def test_update_profile_clears_field_with_null(
        self, profile_service: ProfileService, test_user_id: UUID4
    ):
        # Act
        profile = await profile_service.update_profile(
            test_user_id, ProfileUpdate(occupation=None, known_languages=None)
        )

        # Assert
        assert profile.occupation is None
        assert profile.known_languages == []
        assert profile.completion_percentage == 20

    @pytest.mark.asyncio
    async def test_update_missing_profile(self, profile_service: ProfileService):
        with pytest.raises(ProfileNotFoundError):
            await profile_service.update_profile(uuid4(), ProfileUpdate(height=170))

    def test_profile_update_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            ProfileUpdate(completion_percentage=100)

    @pytest.mark.asyncio
    async def test_staged_editing_unlocks_next_stage(
        self, profile_service: ProfileService, gatekeeper: GateKeeper
    ):
        # Arrange
        user_id = uuid4()
        await profile_service.create_profile(user_id)

        # Act
        await profile_service.update_stage(user_id, ProfileStage.BASIC, BASIC_STAGE)
        profile = await profile_service.update_stage(
            user_id,
            ProfileStage.PERSONAL,
            PersonalProfileStage(
                about_me="Loves hiking",
                work_location=WorkLocation(country="LK", city="Galle"),
            ),
        )

        # Assert
        assert profile.about_me == "Loves hiking"
        account = await gatekeeper.get_account(user_id)
        assert account.profile_stage == ProfileStage.LIFESTYLE

    @pytest.mark.asyncio
    async def test_stage_ahead_of_progress_is_rejected(
        self, profile_service: ProfileService
    ):
        # Arrange
        user_id = uuid4()
        await profile_service.create_profile(user_id)

        # Act & Assert
        with pytest.raises(InsufficientProgressError):
            await profile_service.update_stage(
                user_id,
                ProfileStage.LIFESTYLE,
                LifestyleProfileStage(dietary_preference=DietaryPreference.VEGAN),
            )

    @pytest.mark.asyncio
    async def test_stage_payload_must_match_stage(
        self, profile_service: ProfileService
    ):
        # Arrange
        user_id = uuid4()
        await profile_service.create_profile(user_id)

        # Act & Assert
        with pytest.raises(InsufficientProgressError):
            await profile_service.update_stage(
                user_id, ProfileStage.BASIC, PersonalProfileStage(about_me="Hi")
            )

    @pytest.mark.asyncio
    async def test_stage_editing_closed_after_submit(
        self, profile_service: ProfileService, test_user_id: UUID4
    ):
        with pytest.raises(StageAccessDeniedError):
            await profile_service.update_stage(
                test_user_id, ProfileStage.BASIC, BASIC_STAGE
            )

    @pytest.mark.asyncio
    async def test_get_profile_completion(
        self, profile_service: ProfileService, make_user: Callable[..., UUID4]
    ):
        # Arrange
        user_id = make_user(height=None, mother_tongue=None)

        # Act
        result = await profile_service.get_profile_completion(user_id)

        # Assert
        assert result.percentage == 15
        assert [gap.field for gap in result.missing_fields][:2] == [
            "height",
            "mother_tongue",
        ]

    @pytest.mark.asyncio
    async def test_completion_without_profile_is_zero(
        self, profile_service: ProfileService, make_user: Callable[..., UUID4]
    ):
        # Arrange
        user_id = make_user(with_profile=False)

        # Act
        result = await profile_service.get_profile_completion(user_id)

        # Assert
        assert result.percentage == 0
        assert result.is_complete is False
        assert [gap.field for gap in result.missing_fields] == [
            "marital_status",
            "education",
            "occupation",
            "height",
            "mother_tongue",
        ]

    @pytest.mark.asyncio
    async def test_stage_access_checked_before_payload(
        self, profile_service: ProfileService, test_user_id: UUID4
    ):
        with pytest.raises(StageAccessDeniedError):
            await profile_service.update_stage(
                test_user_id, ProfileStage.BASIC, PersonalProfileStage(about_me="Hi")
            )

    @pytest.mark.asyncio
    async def test_public_profile_hidden_when_private(
        self,
        profile_service: ProfileService,
        test_user_id: UUID4,
        another_test_user_id: UUID4,
    ):
        # Act & Assert
        with pytest.raises(ProfileNotFoundError):
            await profile_service.get_public_profile(
                another_test_user_id, test_user_id
            )
        own = await profile_service.get_public_profile(test_user_id, test_user_id)
        assert own.user_id == test_user_id

    @pytest.mark.asyncio
    async def test_public_profile_hidden_across_block(
        self,
        profile_service: ProfileService,
        block_workflow: BlockWorkflow,
        make_user: Callable[..., UUID4],
        another_test_user_id: UUID4,
    ):
        # Arrange
        public_user = make_user(is_public=True)
        visible = await profile_service.get_public_profile(
            another_test_user_id, public_user
        )

        # Act
        await block_workflow.block(public_user, another_test_user_id)

        # Assert
        assert visible.user_id == public_user
        with pytest.raises(ProfileNotFoundError):
            await profile_service.get_public_profile(another_test_user_id, public_user)

    @pytest.mark.asyncio
    async def test_derived_fields_stored_with_profile(
        self,
        profile_service: ProfileService,
        store: MemoryRelationshipStore,
        test_user_id: UUID4,
    ):
        # Act
        updated = await profile_service.update_profile(
            test_user_id, ProfileUpdate(hobbies=["chess"])
        )

        # Assert
        stored = next(p for p in store.rows("profiles") if p.user_id == test_user_id)
        assert stored.completion_percentage == updated.completion_percentage == 28
