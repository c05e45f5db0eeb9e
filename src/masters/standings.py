from dataclasses import replace
from typing import Dict, Iterable, List

from masters.models import GROUPS, Group, MastersState, Match, Phase, Team


def standing_key(team: Team):
    return (-team.points, -team.differential, -team.games_won)


def rank(teams: Iterable[Team]) -> List[Team]:
    """Best first: points, then games differential, then games won. Ties keep input order."""
    return sorted(teams, key=standing_key)


def group_standings(state: MastersState) -> Dict[Group, List[Team]]:
    return {group: rank(state.teams_in(group)) for group in GROUPS}


def tally(teams: Iterable[Team], matches: Iterable[Match]) -> List[Team]:
    """Recompute group-stage stats from scratch over every decided phase-1 match."""
    teams = [t.with_zero_stats() for t in teams]
    stats = {t.id: [0, 0, 0] for t in teams}   # points, won, lost
    for m in matches:
        if m.phase != Phase.GROUPS or not m.is_decided:
            continue
        if m.winner_id in stats:
            stats[m.winner_id][0] += 1
            stats[m.winner_id][1] += 1
        if m.loser_id in stats:
            stats[m.loser_id][2] += 1

    return [
        replace(t, points=stats[t.id][0], games_won=stats[t.id][1], games_lost=stats[t.id][2])
        for t in teams
    ]
