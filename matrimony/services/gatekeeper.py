import logging

from pydantic import UUID4

from matrimony.config import settings
from matrimony.models.profile import Profile
from matrimony.models.user import Account, ProfileStage
from matrimony.services.errors import (
    GateDeniedError,
    InsufficientProgressError,
    ProfileNotFoundError,
    StageAccessDeniedError,
    UserNotFoundError,
)
from matrimony.services.scoring import missing_required_fields, score
from matrimony.services.store import (
    RelationshipStore,
    StoreBackedService,
    StoreTransaction,
)

log = logging.getLogger(__name__)

COMPLETE_PROFILE_HINT = "/profile/complete"
DASHBOARD_HINT = "/dashboard"
SKIP_MIN_STAGE = ProfileStage.LIFESTYLE


def stage_hint(stage: ProfileStage) -> str:
    return f"/profile/stage/{int(stage)}"


class GateKeeper(StoreBackedService):
    """Decides who may use relationship features and the staged profile editor.

    A user may use relationships once they have submitted (or skipped the rest
    of) the staged editor and their profile still scores at least
    ``min_completion``. The submitted flag never reverts.

    Attributes:
        min_completion: Minimum completion percentage for relationship actions
    """

    def __init__(
        self,
        store: RelationshipStore,
        min_completion: int = settings.RELATIONSHIP_MIN_COMPLETION,
    ) -> None:
        super().__init__(store)
        self.min_completion = min_completion

    def _load_gate_state(
        self, tx: StoreTransaction, user_id: UUID4
    ) -> tuple[Account | None, Profile | None]:
        return tx.get_account(user_id), tx.get_profile(user_id)

    def _eligible(self, account: Account | None, profile: Profile | None) -> bool:
        if account is None or profile is None:
            return False
        if not account.minimal_profile_completion:
            return False
        return score(profile).percentage >= self.min_completion

    async def can_use_relationships(self, user_id: UUID4) -> bool:
        """Check whether a user may send, answer or withdraw interests and block.

        Args:
            user_id: ID of the user to check

        Returns:
            True if the user passed the gate and their profile is still complete
            enough, False otherwise
        """
        account, profile = self._read(self._load_gate_state, user_id)
        return self._eligible(account, profile)

    async def ensure_can_use_relationships(self, user_id: UUID4) -> None:
        """Raise unless the user may use relationship features.

        Raises:
            GateDeniedError: If the user has not passed the profile gate
        """
        if not await self.can_use_relationships(user_id):
            log.info("Relationship gate denied user %s", user_id)
            raise GateDeniedError(
                "Complete your profile before using relationship features",
                redirect_hint=COMPLETE_PROFILE_HINT,
            )

    async def can_advance_stage(
        self, user_id: UUID4, requested_stage: ProfileStage
    ) -> Account:
        """Check that a user may edit the requested stage of the profile editor.

        Args:
            user_id: ID of the user
            requested_stage: Stage the user wants to edit

        Returns:
            The user's account

        Raises:
            UserNotFoundError: If the user has no account
            StageAccessDeniedError: If the user already passed the profile gate
            InsufficientProgressError: If earlier stages are not finished yet
        """
        account = await self.get_account(user_id)
        self.check_stage_access(account, requested_stage)
        return account

    async def get_account(self, user_id: UUID4) -> Account:
        """Get a user's account.

        Raises:
            UserNotFoundError: If the user has no account
        """
        account, _ = self._read(self._load_gate_state, user_id)
        if account is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return account

    def check_stage_access(
        self, account: Account, requested_stage: ProfileStage
    ) -> None:
        if account.minimal_profile_completion:
            raise StageAccessDeniedError(
                "Initial profile already submitted; edit the profile directly",
                redirect_hint=DASHBOARD_HINT,
            )
        if requested_stage > account.profile_stage:
            raise InsufficientProgressError(
                f"Complete stage {int(account.profile_stage)} first",
                redirect_hint=stage_hint(account.profile_stage),
            )

    def _submit_initial_profile(self, tx: StoreTransaction, user_id: UUID4) -> Account:
        account = tx.get_account(user_id)
        if account is None:
            raise UserNotFoundError(f"User {user_id} not found")
        profile = tx.get_profile(user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile for user {user_id} not found")
        if missing := missing_required_fields(profile):
            raise InsufficientProgressError(
                f"Missing required fields: {', '.join(missing)}",
                redirect_hint=stage_hint(ProfileStage.BASIC),
            )
        return tx.update_account(
            account.model_copy(
                update={
                    "minimal_profile_completion": True,
                    "profile_stage": ProfileStage.COMPLETED,
                }
            )
        )

    async def submit_initial_profile(self, user_id: UUID4) -> Account:
        """Submit the staged profile and open relationship features.

        Args:
            user_id: ID of the user submitting

        Returns:
            The updated account

        Raises:
            UserNotFoundError: If the user has no account
            ProfileNotFoundError: If the user has no profile
            InsufficientProgressError: If a required field is still empty
        """
        account = self._write(self._submit_initial_profile, user_id)
        log.info("User %s submitted initial profile", user_id)
        return account

    def _skip_profile_stages(self, tx: StoreTransaction, user_id: UUID4) -> Account:
        account = tx.get_account(user_id)
        if account is None:
            raise UserNotFoundError(f"User {user_id} not found")
        if account.profile_stage < SKIP_MIN_STAGE:
            raise InsufficientProgressError(
                f"Reach stage {int(SKIP_MIN_STAGE)} before skipping",
                redirect_hint=stage_hint(account.profile_stage),
            )
        return tx.update_account(
            account.model_copy(update={"minimal_profile_completion": True})
        )

    async def skip_profile_stages(self, user_id: UUID4) -> Account:
        """Skip the remaining optional stages and open relationship features.

        Raises:
            UserNotFoundError: If the user has no account
            InsufficientProgressError: If the user has not reached stage 3
        """
        account = self._write(self._skip_profile_stages, user_id)
        log.info("User %s skipped remaining profile stages", user_id)
        return account
