from masters.models import Group, Team
from masters.standings import rank


def _team(tid, points=0, won=0, lost=0):
    return Team(id=tid, player1_name=f"{tid}a", player2_name=f"{tid}b", group=Group.I,
                points=points, games_won=won, games_lost=lost)


class TestRank:
    def test_points_first(self):
        teams = [_team("a", points=1), _team("b", points=3), _team("c", points=2)]
        assert [t.id for t in rank(teams)] == ["b", "c", "a"]

    def test_differential_breaks_point_ties(self):
        teams = [_team("a", 2, won=2, lost=2), _team("b", 2, won=2, lost=0)]
        assert [t.id for t in rank(teams)] == ["b", "a"]

    def test_games_won_breaks_differential_ties(self):
        teams = [_team("a", 2, won=2, lost=1), _team("b", 2, won=3, lost=2)]
        assert [t.id for t in rank(teams)] == ["b", "a"]

    def test_full_ties_keep_input_order(self):
        teams = [_team("x", 1, 1, 1), _team("y", 1, 1, 1), _team("z", 1, 1, 1)]
        assert [t.id for t in rank(teams)] == ["x", "y", "z"]
        assert [t.id for t in rank(reversed(teams))] == ["z", "y", "x"]

    def test_is_pure(self):
        teams = [_team("a", 0), _team("b", 5)]
        rank(teams)
        assert [t.id for t in teams] == ["a", "b"]

    def test_order_is_consistent(self):
        teams = [_team(str(i), points=i % 3, won=i % 4, lost=i % 2) for i in range(12)]
        ranked = rank(teams)
        keys = [(-t.points, -t.differential, -t.games_won) for t in ranked]
        assert keys == sorted(keys)
