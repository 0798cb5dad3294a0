from collections.abc import Callable
from uuid import uuid4

import pytest
from pydantic import UUID4

from matrimony.models.user import ProfileStage
from matrimony.services.errors import (
    GateDeniedError,
    InsufficientProgressError,
    StageAccessDeniedError,
    UserNotFoundError,
)
from matrimony.services.gatekeeper import (
    COMPLETE_PROFILE_HINT,
    DASHBOARD_HINT,
    GateKeeper,
)


@pytest.mark.unit
class TestGateKeeper:
    @pytest.mark.asyncio
    async def test_passed_gate_with_basic_fields_can_use_relationships(
        self, gatekeeper: GateKeeper, test_user_id: UUID4
    ):
        # Act
        result = await gatekeeper.can_use_relationships(test_user_id)

        # Assert
        assert result is True

    @pytest.mark.asyncio
    async def test_flag_not_set_is_denied(
        self, gatekeeper: GateKeeper, make_user: Callable[..., UUID4]
    ):
        # Arrange
        user_id = make_user(gate_passed=False, profile_stage=ProfileStage.MEDIA)

        # Act & Assert
        assert await gatekeeper.can_use_relationships(user_id) is False
        with pytest.raises(GateDeniedError) as exc_info:
            await gatekeeper.ensure_can_use_relationships(user_id)
        assert exc_info.value.redirect_hint == COMPLETE_PROFILE_HINT

    @pytest.mark.asyncio
    async def test_low_score_is_denied_even_with_flag(
        self, gatekeeper: GateKeeper, make_user: Callable[..., UUID4]
    ):
        # Arrange
        user_id = make_user(occupation=None, height=None)

        # Act
        result = await gatekeeper.can_use_relationships(user_id)

        # Assert
        assert result is False

    @pytest.mark.asyncio
    async def test_unknown_user_is_denied(self, gatekeeper: GateKeeper):
        # Act
        result = await gatekeeper.can_use_relationships(uuid4())

        # Assert
        assert result is False

    @pytest.mark.asyncio
    async def test_stage_access_within_progress(
        self, gatekeeper: GateKeeper, make_user: Callable[..., UUID4]
    ):
        # Arrange
        user_id = make_user(gate_passed=False, profile_stage=ProfileStage.PERSONAL)

        # Act
        account = await gatekeeper.can_advance_stage(user_id, ProfileStage.BASIC)

        # Assert
        assert account.profile_stage == ProfileStage.PERSONAL

    @pytest.mark.asyncio
    async def test_stage_ahead_of_progress_is_rejected(
        self, gatekeeper: GateKeeper, make_user: Callable[..., UUID4]
    ):
        # Arrange
        user_id = make_user(gate_passed=False, profile_stage=ProfileStage.PERSONAL)

        # Act & Assert
        with pytest.raises(InsufficientProgressError) as exc_info:
            await gatekeeper.can_advance_stage(user_id, ProfileStage.LIFESTYLE)
        assert exc_info.value.redirect_hint == "/profile/stage/2"

    @pytest.mark.asyncio
    async def test_stage_access_denied_after_gate(
        self, gatekeeper: GateKeeper, test_user_id: UUID4
    ):
        # Act & Assert
        with pytest.raises(StageAccessDeniedError) as exc_info:
            await gatekeeper.can_advance_stage(test_user_id, ProfileStage.BASIC)
        assert exc_info.value.redirect_hint == DASHBOARD_HINT

    @pytest.mark.asyncio
    async def test_stage_access_for_unknown_user(self, gatekeeper: GateKeeper):
        with pytest.raises(UserNotFoundError):
            await gatekeeper.can_advance_stage(uuid4(), ProfileStage.BASIC)

    @pytest.mark.asyncio
    async def test_submit_initial_profile_opens_gate(
        self, gatekeeper: GateKeeper, make_user: Callable[..., UUID4]
    ):
        # Arrange
        user_id = make_user(gate_passed=False, profile_stage=ProfileStage.PERSONAL)

        # Act
        account = await gatekeeper.submit_initial_profile(user_id)

        # Assert
        assert account.minimal_profile_completion is True
        assert account.profile_stage == ProfileStage.COMPLETED
        assert await gatekeeper.can_use_relationships(user_id) is True

    @pytest.mark.asyncio
    async def test_submit_requires_every_required_field(
        self, gatekeeper: GateKeeper, make_user: Callable[..., UUID4]
    ):
        # Arrange
        user_id = make_user(
            gate_passed=False, profile_stage=ProfileStage.MEDIA, mother_tongue=None
        )

        # Act & Assert
        with pytest.raises(InsufficientProgressError, match="mother_tongue"):
            await gatekeeper.submit_initial_profile(user_id)
        account = await gatekeeper.get_account(user_id)
        assert account.minimal_profile_completion is False

    @pytest.mark.asyncio
    async def test_skip_from_lifestyle_stage(
        self, gatekeeper: GateKeeper, make_user: Callable[..., UUID4]
    ):
        # Arrange
        user_id = make_user(gate_passed=False, profile_stage=ProfileStage.LIFESTYLE)

        # Act
        account = await gatekeeper.skip_profile_stages(user_id)

        # Assert
        assert account.minimal_profile_completion is True
        assert account.profile_stage == ProfileStage.LIFESTYLE

    @pytest.mark.asyncio
    async def test_skip_before_lifestyle_stage_fails(
        self, gatekeeper: GateKeeper, make_user: Callable[..., UUID4]
    ):
        # Arrange
        user_id = make_user(gate_passed=False, profile_stage=ProfileStage.PERSONAL)

        # Act & Assert
        with pytest.raises(InsufficientProgressError):
            await gatekeeper.skip_profile_stages(user_id)

    @pytest.mark.asyncio
    async def test_gate_flag_never_reverts(
        self, gatekeeper: GateKeeper, store, test_user_id: UUID4
    ):
        # Arrange
        account = await gatekeeper.get_account(test_user_id)

        def reset_flag(tx, user_id):
            return tx.update_account(
                account.model_copy(update={"minimal_profile_completion": False})
            )

        # Act
        store.write(reset_flag, test_user_id)

        # Assert
        account = await gatekeeper.get_account(test_user_id)
        assert account.minimal_profile_completion is True
