"""
Team registry: roster edits made while the tournament is being set up.
"""
import logging
import random
from dataclasses import replace
from typing import Iterable, List, Optional

from masters.exceptions import CapacityExceeded, InsufficientPool, InvalidTeam
from masters.models import GROUPS, GROUP_CAPACITY, Group, MastersState, Team, generate_id

logger = logging.getLogger(__name__)

# Header cell commonly found in the first column of imported rosters
POOL_HEADER = "nome"


def _unique(names: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


def combined_pool(pool: Iterable[str], member_names: Iterable[str]) -> List[str]:
    """Imported names first, then club members, without duplicates."""
    return _unique([*pool, *member_names])


def available_names(state: MastersState, candidates: Iterable[str]) -> List[str]:
    """Candidates not yet playing on a team, alphabetically."""
    used = state.used_names()
    return sorted((n for n in _unique(candidates) if n not in used), key=str.casefold)


def import_pool(state: MastersState, names: Iterable[str]) -> MastersState:
    cleaned = []
    for name in names:
        name = str(name).strip() if name is not None else ""
        if name and name.lower() != POOL_HEADER:
            cleaned.append(name)
    pool = _unique([*state.pool, *cleaned])
    logger.info("Imported %d names into the eligible pool (%d total)", len(cleaned), len(pool))
    return replace(state, pool=tuple(pool))


def add_team(state: MastersState, player1: str, player2: str, group: Group,
             team_id: Optional[str] = None) -> MastersState:
    player1 = (player1 or "").strip()
    player2 = (player2 or "").strip()
    group = Group(group)

    if not player1 or not player2:
        raise InvalidTeam("Both players must be selected")
    if player1 == player2:
        raise InvalidTeam("Player 1 and player 2 cannot be the same person")
    if len(state.teams_in(group)) >= GROUP_CAPACITY:
        raise CapacityExceeded(
            f"Group {group.value} already has {GROUP_CAPACITY} teams"
        )

    taken = state.used_names() & {player1, player2}
    if taken:
        # Uniqueness across teams is not enforced for manual adds
        logger.warning("Players %s already belong to another team", sorted(taken))

    team = Team(id=team_id or generate_id(), player1_name=player1,
                player2_name=player2, group=group)
    logger.info("Team %s added to group %s", team.id, group.value)
    return replace(state, teams=state.teams + (team,))


def remove_team(state: MastersState, team_id: str) -> MastersState:
    # Matches already generated for the team are left untouched
    return replace(state, teams=tuple(t for t in state.teams if t.id != team_id))


def fill_groups(state: MastersState, names: Iterable[str],
                rng: Optional[random.Random] = None) -> MastersState:
    """
    Complete every group to four teams with random pairs drawn from `names`.

    Names already on a team are skipped. Groups are filled in order I..IV and
    the fill stops quietly once fewer than two names remain, leaving the
    remaining slots for manual completion.
    """
    rng = rng or random.Random()
    used = state.used_names()
    shuffled = [n for n in _unique(names) if n not in used]
    rng.shuffle(shuffled)

    new_teams = []
    cursor = 0
    for group in GROUPS:
        needed = GROUP_CAPACITY - len(state.teams_in(group))
        for _ in range(needed):
            if cursor + 1 >= len(shuffled):
                break
            p1, p2 = shuffled[cursor], shuffled[cursor + 1]
            cursor += 2
            new_teams.append(Team(id=generate_id(), player1_name=p1,
                                  player2_name=p2, group=group))

    if not new_teams:
        return state
    logger.info("Auto-fill created %d teams", len(new_teams))
    return replace(state, teams=state.teams + tuple(new_teams))


def auto_fill(state: MastersState, names: Iterable[str],
              rng: Optional[random.Random] = None) -> MastersState:
    names = list(names)
    used = state.used_names()
    if len([n for n in _unique(names) if n not in used]) < 2:
        raise InsufficientPool("Not enough available players to build another team")
    return fill_groups(state, names, rng)
