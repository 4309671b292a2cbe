# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from popcontest.models.contestant import Contestant  # noqa: F401
from popcontest.models.matchup import Matchup  # noqa: F401
from popcontest.models.round import Round  # noqa: F401
from popcontest.models.tournament import Tournament  # noqa: F401
from popcontest.models.vote import Vote  # noqa: F401
