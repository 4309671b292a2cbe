"""
Domain exceptions raised by the bracket, voting and tie-break services.

Routes translate these into HTTP responses; services never raise HTTPException.
"""


class ContestError(Exception):
    """Base exception for contest core errors"""

    pass


class NotFoundError(ContestError):
    """Referenced tournament, round, matchup or contestant does not exist"""

    pass


class ValidationError(ContestError):
    """Contestant input cannot produce a bracket; nothing was committed"""

    pass


class InvalidStateError(ContestError):
    """Operation not allowed in the entity's current status"""

    pass


class InvalidChoiceError(ContestError):
    """Chosen contestant is not one of the matchup's two contestants"""

    pass


class DuplicateVoteError(ContestError):
    """A vote already exists for (voter, matchup, kind)"""

    pass


class NotTiedError(ContestError):
    """Tie-break requested for a matchup that is not tied"""

    pass


class AlreadyResolvedError(ContestError):
    """Matchup was already closed or already has a tie-break vote"""

    pass
