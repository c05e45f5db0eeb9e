"""
Masters tournament state machine.

Every command takes the current `MastersState` and returns a new one; nothing
is mutated in place and nothing is persisted here. Callers store and
broadcast the returned aggregate as a whole.
"""
import logging
import random
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from masters import registry
from masters.exceptions import IncompletePrerequisite, InvalidTransition
from masters.group_stage import generate_group_matches, record_result
from masters.knockout import FINAL_COURT, THIRD_PLACE_COURT, cross_round_matches, finals_matches
from masters.models import (
    FULL_ROSTER, GROUPS, GROUP_CAPACITY, Group, MastersState, Phase, Podium, Stage,
)
from masters.standings import group_standings

logger = logging.getLogger(__name__)


def stage(state: MastersState) -> Stage:
    if not state.matches_in(Phase.GROUPS):
        return Stage.SETUP
    if state.current_phase == Phase.CROSS_ROUND:
        return Stage.CROSS_ROUND
    if state.current_phase == Phase.FINALS:
        return Stage.FINALS
    return Stage.GROUPS


def _require_stage(state: MastersState, expected: Stage, action: str):
    current = stage(state)
    if current != expected:
        raise InvalidTransition(
            f"Cannot {action} while the tournament is in stage '{current.value}'"
        )


def _check(warnings, force: bool):
    if not warnings:
        return
    if not force:
        raise IncompletePrerequisite(warnings)
    for warning in warnings:
        logger.warning("Proceeding despite: %s", warning)


def start_tournament(state: MastersState, force: bool = False) -> MastersState:
    """
    Generate the group fixtures. A short roster only warns, but at least one
    group needs two teams even when forced, otherwise the stage would stay
    SETUP with nothing to play.
    """
    _require_stage(state, Stage.SETUP, "start the tournament")
    warnings = []
    if len(state.teams) < FULL_ROSTER:
        warnings.append(
            f"The tournament should have {FULL_ROSTER} teams ({GROUP_CAPACITY} per group), "
            f"found {len(state.teams)}"
        )
    _check(warnings, force)

    matches = generate_group_matches(state.teams)
    if not matches:
        raise InvalidTransition("Cannot start the tournament: no group has two teams")
    logger.info("Tournament started with %d teams and %d group matches", len(state.teams), len(matches))
    return replace(state, matches=tuple(matches), current_phase=Phase.GROUPS)


def start_cross_round(state: MastersState, force: bool = False) -> MastersState:
    _require_stage(state, Stage.GROUPS, "start phase 2")
    rankings = group_standings(state)
    warnings = [
        f"Group {group.value} has {len(rankings[group])} teams instead of {GROUP_CAPACITY}"
        for group in GROUPS
        if len(rankings[group]) < GROUP_CAPACITY
    ]
    _check(warnings, force)

    matches = cross_round_matches(rankings)
    logger.info("Phase 2 started with %d cross-round matches", len(matches))
    return replace(state, matches=state.matches + tuple(matches), current_phase=Phase.CROSS_ROUND)


def start_finals(state: MastersState, force: bool = False) -> MastersState:
    _require_stage(state, Stage.CROSS_ROUND, "start the finals")
    pending = [m for m in state.matches_in(Phase.CROSS_ROUND) if not m.is_decided]
    warnings = [f"Court {m.court_number} of phase 2 has no winner yet" for m in pending]
    _check(warnings, force)

    matches = finals_matches(state.matches_in(Phase.CROSS_ROUND))
    logger.info("Finals started with %d matches", len(matches))
    return replace(state, matches=state.matches + tuple(matches), current_phase=Phase.FINALS)


def reset(state: MastersState) -> MastersState:
    """Drop teams and matches; the eligible pool survives."""
    logger.info("Masters reset (%d teams, %d matches discarded)", len(state.teams), len(state.matches))
    return MastersState(pool=state.pool)


def podium(state: MastersState) -> Optional[Podium]:
    finals = {m.court_number: m for m in state.matches_in(Phase.FINALS)}
    final = finals.get(FINAL_COURT)
    third_place = finals.get(THIRD_PLACE_COURT)
    if final is None or third_place is None or not (final.is_decided and third_place.is_decided):
        return None

    places = [state.team(team_id) for team_id in (
        final.winner_id, final.loser_id, third_place.winner_id, third_place.loser_id,
    )]
    if any(team is None for team in places):
        return None
    return Podium(*places)


# -- Commands -----------------------------------------------------------------

@dataclass(frozen=True)
class AddTeam:
    player1: str
    player2: str
    group: Group


@dataclass(frozen=True)
class RemoveTeam:
    team_id: str


@dataclass(frozen=True)
class AutoFill:
    names: Tuple[str, ...]
    seed: Optional[int] = None


@dataclass(frozen=True)
class ImportPool:
    names: Tuple[str, ...]


@dataclass(frozen=True)
class StartTournament:
    force: bool = False


@dataclass(frozen=True)
class StartCrossRound:
    force: bool = False


@dataclass(frozen=True)
class StartFinals:
    force: bool = False


@dataclass(frozen=True)
class RecordResult:
    match_id: str
    winner_id: str


@dataclass(frozen=True)
class Reset:
    pass


def _setup_only(state: MastersState, action: str):
    _require_stage(state, Stage.SETUP, action)


def apply(state: MastersState, command) -> MastersState:
    """Single entry point: (state, command) -> new state."""
    if isinstance(command, AddTeam):
        _setup_only(state, "add a team")
        return registry.add_team(state, command.player1, command.player2, command.group)
    if isinstance(command, RemoveTeam):
        return registry.remove_team(state, command.team_id)
    if isinstance(command, AutoFill):
        _setup_only(state, "auto-fill the groups")
        rng = random.Random(command.seed) if command.seed is not None else None
        return registry.auto_fill(state, command.names, rng)
    if isinstance(command, ImportPool):
        return registry.import_pool(state, command.names)
    if isinstance(command, StartTournament):
        return start_tournament(state, command.force)
    if isinstance(command, StartCrossRound):
        return start_cross_round(state, command.force)
    if isinstance(command, StartFinals):
        return start_finals(state, command.force)
    if isinstance(command, RecordResult):
        return record_result(state, command.match_id, command.winner_id)
    if isinstance(command, Reset):
        return reset(state)
    raise TypeError(f"Unknown command {command!r}")


def apply_all(state: MastersState, commands: Sequence) -> MastersState:
    for command in commands:
        state = apply(state, command)
    return state
