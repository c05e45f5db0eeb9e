"""
Group stage: round-robin fixtures inside each group and result recording.
"""
import logging
from dataclasses import replace
from itertools import combinations
from typing import Dict, Iterable, List, Tuple

from masters.exceptions import UnknownMatch
from masters.models import GROUPS, Group, MastersState, Match, Phase, Team, generate_id
from masters.standings import tally

logger = logging.getLogger(__name__)

# Two display courts per group; fixtures alternate between them
GROUP_COURTS: Dict[Group, Tuple[int, int]] = {
    Group.I: (1, 2),
    Group.II: (3, 4),
    Group.III: (5, 6),
    Group.IV: (7, 8),
}


def generate_group_matches(teams: Iterable[Team]) -> List[Match]:
    """One phase-1 match per unordered pair of teams sharing a group."""
    teams = list(teams)
    matches = []
    for group in GROUPS:
        group_teams = [t for t in teams if t.group == group]
        for home, away in combinations(group_teams, 2):
            matches.append(Match(
                id=generate_id(),
                phase=Phase.GROUPS,
                court_number=GROUP_COURTS[group][len(matches) % 2],
                team1_id=home.id,
                team2_id=away.id,
                group=group,
            ))
    return matches


def record_result(state: MastersState, match_id: str, winner_id: str) -> MastersState:
    """
    Set the winner of a match, replacing any previous winner.

    Group-stage results trigger a full re-tally of every team's stats, so
    corrections never leave stale points behind.
    """
    index = next((i for i, m in enumerate(state.matches) if m.id == match_id), None)
    if index is None:
        raise UnknownMatch(f"Match {match_id} not found")

    match = state.matches[index]
    decided = match.decide(winner_id)
    if match.is_decided and match.winner_id != winner_id:
        logger.info("Match %s corrected: winner %s -> %s", match_id, match.winner_id, winner_id)

    matches = state.matches[:index] + (decided,) + state.matches[index + 1:]
    teams = state.teams
    if decided.phase == Phase.GROUPS:
        teams = tuple(tally(state.teams, matches))
    return replace(state, matches=matches, teams=teams)
