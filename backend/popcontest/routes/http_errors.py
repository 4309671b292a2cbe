from fastapi import HTTPException

from popcontest.services.errors import (
    AlreadyResolvedError,
    ContestError,
    DuplicateVoteError,
    InvalidChoiceError,
    InvalidStateError,
    NotFoundError,
    NotTiedError,
    ValidationError,
)

_STATUS_CODES = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (InvalidChoiceError, 422),
    (InvalidStateError, 409),
    (DuplicateVoteError, 409),
    (NotTiedError, 409),
    (AlreadyResolvedError, 409),
)


def to_http_exception(e: ContestError) -> HTTPException:
    """Map a service exception to the HTTP status routes respond with."""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(e, error_type):
            return HTTPException(status_code=status_code, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))
