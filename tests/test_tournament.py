"""
Tests for the Masters state machine: stage transitions, warnings, reset and
the podium.
"""
import pytest

from masters.exceptions import (
    CapacityExceeded, IncompletePrerequisite, InvalidTransition,
)
from masters.knockout import FINAL_COURT, THIRD_PLACE_COURT
from masters.models import Group, MastersState, Phase, Stage
from masters.registry import add_team
from masters.tournament import (
    AddTeam, AutoFill, ImportPool, RecordResult, RemoveTeam, Reset, StartCrossRound,
    StartFinals, StartTournament, apply, apply_all, podium, reset, stage,
    start_cross_round, start_finals, start_tournament,
)

from conftest import build_state


def _play(state, phase, pick_first=True):
    for m in state.matches_in(phase):
        state = apply(state, RecordResult(m.id, m.team1_id if pick_first else m.team2_id))
    return state


@pytest.fixture
def in_groups(full_state):
    return start_tournament(full_state)


@pytest.fixture
def in_cross_round(in_groups):
    return start_cross_round(_play(in_groups, Phase.GROUPS))


@pytest.fixture
def in_finals(in_cross_round):
    return start_finals(_play(in_cross_round, Phase.CROSS_ROUND))


class TestStages:
    def test_setup_without_matches(self, full_state):
        assert stage(full_state) == Stage.SETUP

    def test_full_walkthrough(self, in_groups, in_cross_round, in_finals):
        assert stage(in_groups) == Stage.GROUPS
        assert len(in_groups.matches_in(Phase.GROUPS)) == 24
        assert stage(in_cross_round) == Stage.CROSS_ROUND
        assert len(in_cross_round.matches_in(Phase.CROSS_ROUND)) == 8
        assert stage(in_finals) == Stage.FINALS
        assert len(in_finals.matches_in(Phase.FINALS)) == 8

    def test_start_twice_rejected(self, in_groups):
        with pytest.raises(InvalidTransition):
            start_tournament(in_groups)

    def test_phase2_requires_groups(self, full_state):
        with pytest.raises(InvalidTransition):
            start_cross_round(full_state)

    def test_finals_require_cross_round(self, in_groups):
        with pytest.raises(InvalidTransition):
            start_finals(in_groups)

    def test_add_team_only_during_setup(self, in_groups):
        with pytest.raises(InvalidTransition):
            apply(in_groups, AddTeam("X", "Y", Group.I))


class TestWarnings:
    """Incomplete prerequisites need an explicit override."""

    def test_start_with_few_teams_warns(self):
        state = build_state(3)
        with pytest.raises(IncompletePrerequisite) as exc:
            start_tournament(state)
        assert exc.value.warnings
        assert stage(start_tournament(state, force=True)) == Stage.GROUPS

    @pytest.mark.parametrize("teams_per_group", [0, 1])
    def test_start_without_any_fixture_rejected_even_forced(self, teams_per_group):
        state = build_state(teams_per_group)
        with pytest.raises(InvalidTransition):
            start_tournament(state, force=True)
        assert stage(state) == Stage.SETUP

    def test_one_playable_group_is_enough_when_forced(self):
        state = add_team(add_team(MastersState(), "Ana", "Rui", Group.III), "Bea", "Zé", Group.III)
        started = start_tournament(state, force=True)
        assert len(started.matches_in(Phase.GROUPS)) == 1
        assert stage(started) == Stage.GROUPS

    def test_phase2_with_short_group_warns(self):
        state = start_tournament(build_state(4))
        state = MastersState(teams=tuple(t for t in state.teams if t.id != "II-4"),
                             matches=state.matches, pool=state.pool)
        with pytest.raises(IncompletePrerequisite) as exc:
            start_cross_round(state)
        assert any("Group II" in w for w in exc.value.warnings)

        forced = start_cross_round(state, force=True)
        assert len(forced.matches_in(Phase.CROSS_ROUND)) == 7

    def test_finals_with_pending_cross_round_warns(self, in_cross_round):
        cross = {m.court_number: m for m in in_cross_round.matches_in(Phase.CROSS_ROUND)}
        state = apply_all(in_cross_round, [
            RecordResult(cross[1].id, cross[1].team1_id),
            RecordResult(cross[2].id, cross[2].team2_id),
        ])
        with pytest.raises(IncompletePrerequisite):
            start_finals(state)

        forced = apply(state, StartFinals(force=True))
        finals = forced.matches_in(Phase.FINALS)
        assert sorted(m.court_number for m in finals) == [FINAL_COURT, THIRD_PLACE_COURT]

    def test_failed_command_leaves_state(self, full_state):
        state = build_state(3)
        with pytest.raises(IncompletePrerequisite):
            apply(state, StartTournament())
        assert state.matches == ()


class TestResultsAcrossPhases:
    def test_knockout_results_do_not_touch_group_stats(self, in_cross_round):
        before = in_cross_round.teams
        after = _play(in_cross_round, Phase.CROSS_ROUND, pick_first=False)
        assert after.teams == before

    def test_group_correction_after_phase2(self, in_cross_round):
        match = in_cross_round.matches_in(Phase.GROUPS)[0]
        state = apply(in_cross_round, RecordResult(match.id, match.team2_id))
        assert state.team(match.team2_id).points == in_cross_round.team(match.team2_id).points + 1


class TestReset:
    def test_reset_keeps_pool(self, in_finals):
        state = reset(in_finals)
        assert state.teams == ()
        assert state.matches == ()
        assert state.pool == in_finals.pool
        assert state.current_phase == Phase.GROUPS
        assert stage(state) == Stage.SETUP

    def test_reset_command(self, in_groups):
        assert apply(in_groups, Reset()).teams == ()


class TestPodium:
    def test_no_podium_before_finals(self, in_cross_round):
        assert podium(in_cross_round) is None

    def test_no_podium_until_both_decided(self, in_cross_round):
        state = start_finals(_play(in_cross_round, Phase.CROSS_ROUND))
        final = next(m for m in state.matches_in(Phase.FINALS) if m.court_number == FINAL_COURT)
        state = apply(state, RecordResult(final.id, final.team1_id))
        assert podium(state) is None

    def test_podium_order(self, in_cross_round):
        state = start_finals(_play(in_cross_round, Phase.CROSS_ROUND))
        finals = {m.court_number: m for m in state.matches_in(Phase.FINALS)}
        final, third = finals[FINAL_COURT], finals[THIRD_PLACE_COURT]
        state = apply_all(state, [
            RecordResult(final.id, final.team2_id),
            RecordResult(third.id, third.team1_id),
        ])

        result = podium(state)
        assert [t.id for t in result.as_list()] == [
            final.team2_id, final.team1_id, third.team1_id, third.team2_id,
        ]


class TestApply:
    def test_setup_through_commands(self, empty_state):
        state = apply_all(empty_state, [
            ImportPool(("Nome", "Ana", "Rui", "Bea", "Tó")),
            AddTeam("Ana", "Rui", Group.I),
            AutoFill(("Ana", "Rui", "Bea", "Tó"), seed=1),
        ])
        assert state.pool == ("Ana", "Rui", "Bea", "Tó")
        assert len(state.teams_in(Group.I)) == 2

        team_id = state.teams[0].id
        assert apply(state, RemoveTeam(team_id)).team(team_id) is None

    def test_errors_propagate(self):
        with pytest.raises(CapacityExceeded):
            apply(build_state(4), AddTeam("X", "Y", Group.IV))

    def test_unknown_command(self, empty_state):
        with pytest.raises(TypeError):
            apply(empty_state, object())

    def test_phase_commands(self, full_state):
        state = apply(full_state, StartTournament())
        state = _play(state, Phase.GROUPS)
        state = apply(state, StartCrossRound())
        assert state.current_phase == Phase.CROSS_ROUND
