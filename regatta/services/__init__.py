"""
Service layer: ranking, tie-breaks, scheduling and race control.
Everything except race_service is pure; race_service orchestrates persistence.
"""
from .leaderboard import compute_leaderboard
from .tiebreak import resolve_tie_group
from .changeover import update_changeover_flags
from .scheduling import (
    add_round_robin,
    build_schedule,
    generate_league_round_robin,
    generate_round_robin,
)
from .knockout import generate_knockouts, remove_knockouts
from .race_service import RaceService

__all__ = [
    "compute_leaderboard",
    "resolve_tie_group",
    "update_changeover_flags",
    "add_round_robin",
    "build_schedule",
    "generate_league_round_robin",
    "generate_round_robin",
    "generate_knockouts",
    "remove_knockouts",
    "RaceService",
]
