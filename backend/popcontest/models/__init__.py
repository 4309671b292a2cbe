from popcontest.models.contestant import Contestant, Quadrant
from popcontest.models.matchup import Matchup, MatchupStatus
from popcontest.models.round import Round, RoundStatus
from popcontest.models.tournament import Tournament, TournamentStatus
from popcontest.models.vote import TIE_BREAK_ACTOR_ID, Vote, VoteKind

__all__ = [
    "Tournament",
    "TournamentStatus",
    "Contestant",
    "Quadrant",
    "Round",
    "RoundStatus",
    "Matchup",
    "MatchupStatus",
    "Vote",
    "VoteKind",
    "TIE_BREAK_ACTOR_ID",
]
