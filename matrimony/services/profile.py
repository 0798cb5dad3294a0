import logging
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import UUID4

from matrimony.models.profile import Profile
from matrimony.models.user import Account, ProfileStage
from matrimony.schemas.profile import STAGE_SCHEMAS, ProfileInput, ProfileUpdate
from matrimony.services.errors import (
    InsufficientProgressError,
    ProfileExistsError,
    ProfileNotFoundError,
    UserNotFoundError,
)
from matrimony.services.gatekeeper import GateKeeper
from matrimony.services.scoring import ProfileScore, empty_score, score
from matrimony.services.store import (
    PROFILE_OWNER,
    RelationshipStore,
    StoreBackedService,
    StoreTransaction,
)

log = logging.getLogger(__name__)


def apply_changes(profile: Profile, changes: dict[str, Any], now: datetime) -> Profile:
    """Return a validated copy of ``profile`` with changes and fresh derived fields.

    A ``None`` sent for a field that is not nullable resets it to its default.
    """
    values = profile.model_dump()
    for field, value in changes.items():
        if value is None:
            value = Profile.model_fields[field].get_default(call_default_factory=True)
        values[field] = value
    updated = Profile.model_validate(values)
    profile_score = score(updated)
    return updated.model_copy(
        update={
            "completion_percentage": profile_score.percentage,
            "is_complete": profile_score.is_complete,
            "updated_at": now,
        }
    )


class ProfileService(StoreBackedService):
    """Service for creating, editing and scoring matrimonial profiles.

    Derived completion fields are recomputed on every write so they never
    disagree with the profile contents.
    """

    conflicts = {
        PROFILE_OWNER: (ProfileExistsError, "Profile already exists for this user"),
    }

    def __init__(self, store: RelationshipStore, gatekeeper: GateKeeper) -> None:
        super().__init__(store)
        self.gatekeeper = gatekeeper

    def _create_profile(
        self, tx: StoreTransaction, user_id: UUID4, changes: dict[str, Any]
    ) -> Profile:
        now = datetime.now(UTC)
        if tx.get_account(user_id) is None:
            tx.insert_account(Account(user_id=user_id, created_at=now))
        if tx.get_profile(user_id) is not None:
            raise ProfileExistsError("Profile already exists for this user")
        blank = Profile(
            profile_id=uuid4(), user_id=user_id, created_at=now, updated_at=now
        )
        return tx.insert_profile(apply_changes(blank, changes, now))

    async def create_profile(
        self, user_id: UUID4, data: ProfileUpdate | None = None
    ) -> Profile:
        """Create the account record and profile for a newly registered user.

        Args:
            user_id: ID of the registered user
            data: Optional initial profile values

        Returns:
            The created profile

        Raises:
            ProfileExistsError: If the user already has a profile
        """
        changes = data.model_dump(exclude_unset=True) if data else {}
        profile = self._write(self._create_profile, user_id, changes)
        log.info("Created profile %s for user %s", profile.profile_id, user_id)
        return profile

    def _get_profile(self, tx: StoreTransaction, user_id: UUID4) -> Profile | None:
        return tx.get_profile(user_id)

    async def get_profile(self, user_id: UUID4) -> Profile:
        """Get a user's own profile.

        Raises:
            ProfileNotFoundError: If the user has no profile
        """
        profile = self._read(self._get_profile, user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile for user {user_id} not found")
        return profile

    def _get_visible_profile(
        self, tx: StoreTransaction, viewer_id: UUID4, user_id: UUID4
    ) -> Profile | None:
        profile = tx.get_profile(user_id)
        if profile is None or viewer_id == user_id:
            return profile
        if not profile.is_public or tx.block_exists_between(viewer_id, user_id):
            return None
        return profile

    async def get_public_profile(self, viewer_id: UUID4, user_id: UUID4) -> Profile:
        """Get another user's profile as the viewer may see it.

        Private profiles and profiles across a block are reported as missing.

        Raises:
            ProfileNotFoundError: If the profile does not exist or is hidden
        """
        profile = self._read(self._get_visible_profile, viewer_id, user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile for user {user_id} not found")
        return profile

    def _update_profile(
        self, tx: StoreTransaction, user_id: UUID4, changes: dict[str, Any]
    ) -> Profile:
        profile = tx.get_profile(user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile for user {user_id} not found")
        return tx.update_profile(apply_changes(profile, changes, datetime.now(UTC)))

    async def update_profile(self, user_id: UUID4, update: ProfileUpdate) -> Profile:
        """Edit individual profile fields.

        Args:
            user_id: ID of the profile owner
            update: Fields to change; unset fields are left alone

        Returns:
            The updated profile

        Raises:
            ProfileNotFoundError: If the user has no profile
        """
        changes = update.model_dump(exclude_unset=True)
        profile = self._write(self._update_profile, user_id, changes)
        log.info(
            "Updated %d profile fields for user %s (completion %d%%)",
            len(changes),
            user_id,
            profile.completion_percentage,
        )
        return profile

    def _update_stage(
        self,
        tx: StoreTransaction,
        user_id: UUID4,
        stage: ProfileStage,
        changes: dict[str, Any],
    ) -> Profile:
        account = tx.get_account(user_id)
        if account is None:
            raise UserNotFoundError(f"User {user_id} not found")
        self.gatekeeper.check_stage_access(account, stage)
        profile = tx.get_profile(user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile for user {user_id} not found")
        updated = tx.update_profile(apply_changes(profile, changes, datetime.now(UTC)))
        next_stage = min(ProfileStage(stage + 1), ProfileStage.MEDIA)
        if next_stage > account.profile_stage:
            tx.update_account(account.model_copy(update={"profile_stage": next_stage}))
        return updated

    async def update_stage(
        self, user_id: UUID4, stage: ProfileStage, payload: ProfileInput
    ) -> Profile:
        """Save one stage of the staged profile editor.

        Saving a stage unlocks the next one.

        Args:
            user_id: ID of the profile owner
            stage: Stage being saved
            payload: Validated payload for that stage

        Returns:
            The updated profile

        Raises:
            StageAccessDeniedError: If the initial profile was already submitted
            InsufficientProgressError: If the stage is not unlocked yet, or the
                payload does not belong to the stage
            UserNotFoundError: If the user has no account
            ProfileNotFoundError: If the user has no profile
        """
        await self.gatekeeper.can_advance_stage(user_id, stage)
        schema = STAGE_SCHEMAS.get(stage)
        if schema is None or type(payload) is not schema:
            raise InsufficientProgressError(
                f"Stage {int(stage)} cannot be edited with this payload"
            )
        changes = payload.model_dump(exclude_unset=True)
        profile = self._write(self._update_stage, user_id, stage, changes)
        log.info("User %s saved profile stage %d", user_id, stage)
        return profile

    async def get_profile_completion(self, user_id: UUID4) -> ProfileScore:
        """Score a user's profile.

        A user without a profile scores 0 with the required fields missing.
        """
        profile = self._read(self._get_profile, user_id)
        if profile is None:
            return empty_score()
        return score(profile)
