from fastapi import HTTPException, status

from matrimony.services.errors import (
    AuthorizationViolation,
    ConflictViolation,
    NotFoundError,
    PreconditionViolation,
    RelationshipError,
    RelationshipStoreUnavailableError,
    StateViolation,
)

STATUS_CODES: tuple[tuple[type[RelationshipError], int], ...] = (
    (PreconditionViolation, status.HTTP_400_BAD_REQUEST),
    (ConflictViolation, status.HTTP_409_CONFLICT),
    (AuthorizationViolation, status.HTTP_403_FORBIDDEN),
    (StateViolation, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (RelationshipStoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(error: RelationshipError) -> HTTPException:
    """Translate a relationship error into the HTTP error returned to the client.

    Authorization errors that carry a redirect hint return it alongside the
    message so the client can send the user where the denial can be resolved.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in STATUS_CODES:
        if isinstance(error, error_type):
            status_code = code
            break

    if isinstance(error, AuthorizationViolation) and error.redirect_hint:
        return HTTPException(
            status_code=status_code,
            detail={"message": str(error), "redirect": error.redirect_hint},
        )
    return HTTPException(status_code=status_code, detail=str(error))
