class RelationshipError(Exception):
    """Base exception for relationship-related errors."""

    pass


class PreconditionViolation(RelationshipError):
    """Exception raised when an action is malformed before any state is read."""

    pass


class SelfInterestError(PreconditionViolation):
    """Exception raised when a user expresses interest in themselves."""

    pass


class SelfBlockError(PreconditionViolation):
    """Exception raised when a user tries to block themselves."""

    pass


class ConflictViolation(RelationshipError):
    """Exception raised when an action conflicts with existing state."""

    pass


class DuplicateInterestError(ConflictViolation):
    """Exception raised when an interest already exists for the ordered pair."""

    pass


class DuplicateBlockError(ConflictViolation):
    """Exception raised when the user has already blocked the target."""

    pass


class AlreadyBlockedError(ConflictViolation):
    """Exception raised when a block exists between the two users."""

    pass


class ProfileExistsError(ConflictViolation):
    """Exception raised when a profile already exists for the user."""

    pass


class AuthorizationViolation(RelationshipError):
    """Exception raised when the caller may not perform the action.

    Attributes:
        redirect_hint: Client route that lets the caller resolve the denial
    """

    def __init__(self, message: str, redirect_hint: str | None = None) -> None:
        super().__init__(message)
        self.redirect_hint = redirect_hint


class NotAuthorizedError(AuthorizationViolation):
    """Exception raised when the caller is not a party allowed to act."""

    pass


class GateError(AuthorizationViolation):
    """Base exception for profile gate denials."""

    pass


class GateDeniedError(GateError):
    """Exception raised when the profile is not complete enough for relationships."""

    pass


class StageAccessDeniedError(GateError):
    """Exception raised when the staged editor is used after initial completion."""

    pass


class InsufficientProgressError(GateError):
    """Exception raised when a stage is requested before earlier stages are done."""

    pass


class StateViolation(RelationshipError):
    """Exception raised when an entity is not in a state the action accepts."""

    pass


class InvalidTransitionError(StateViolation):
    """Exception raised when an interest or connection cannot make a transition."""

    pass


class NotFoundError(RelationshipError):
    """Exception raised when a referenced entity does not exist."""

    pass


class InterestNotFoundError(NotFoundError):
    pass


class ConnectionNotFoundError(NotFoundError):
    pass


class ProfileNotFoundError(NotFoundError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class BlockNotFoundError(NotFoundError):
    pass


class NotificationNotFoundError(NotFoundError):
    pass


class RelationshipStoreUnavailableError(RelationshipError):
    """Exception raised when the store fails for a reason other than a domain rule."""

    def __init__(self, message: str = "Relationship store is unavailable") -> None:
        super().__init__(message)
