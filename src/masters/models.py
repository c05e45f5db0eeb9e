from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Optional, Tuple, Union

from masters.exceptions import InvalidResult

def generate_id():
    import uuid
    return str(uuid.uuid4())[:8]


class Group(str, Enum):
    I = "I"
    II = "II"
    III = "III"
    IV = "IV"


GROUPS = (Group.I, Group.II, Group.III, Group.IV)
GROUP_CAPACITY = 4
FULL_ROSTER = GROUP_CAPACITY * len(GROUPS)


class Phase(IntEnum):
    GROUPS = 1
    CROSS_ROUND = 2
    FINALS = 3


class Stage(str, Enum):
    SETUP = "setup"
    GROUPS = "groups"
    CROSS_ROUND = "cross_round"
    FINALS = "finals"


@dataclass(frozen=True)
class Team:
    id: str
    player1_name: str
    player2_name: str
    group: Group
    points: int = 0
    games_won: int = 0
    games_lost: int = 0
    sets_won: int = 0

    @property
    def players(self) -> Tuple[str, str]:
        return (self.player1_name, self.player2_name)

    @property
    def differential(self) -> int:
        return self.games_won - self.games_lost

    def with_zero_stats(self) -> "Team":
        return replace(self, points=0, games_won=0, games_lost=0)


@dataclass(frozen=True)
class Undecided:
    pass


@dataclass(frozen=True)
class Decided:
    winner_id: str
    loser_id: str


Result = Union[Undecided, Decided]

UNDECIDED = Undecided()


@dataclass(frozen=True)
class Match:
    id: str
    phase: Phase
    court_number: int
    team1_id: str
    team2_id: str
    result: Result = UNDECIDED
    group: Optional[Group] = None   # phase 1 only

    def __post_init__(self):
        if isinstance(self.result, Decided):
            pair = {self.team1_id, self.team2_id}
            if self.result.winner_id not in pair or self.result.loser_id not in pair \
                    or self.result.winner_id == self.result.loser_id:
                raise InvalidResult(
                    f"Result {self.result} does not match teams of match {self.id}"
                )

    @property
    def is_decided(self) -> bool:
        return isinstance(self.result, Decided)

    @property
    def winner_id(self) -> Optional[str]:
        return self.result.winner_id if isinstance(self.result, Decided) else None

    @property
    def loser_id(self) -> Optional[str]:
        return self.result.loser_id if isinstance(self.result, Decided) else None

    def decide(self, winner_id: str) -> "Match":
        """Return a copy of the match with `winner_id` recorded as the winner."""
        if winner_id == self.team1_id:
            loser_id = self.team2_id
        elif winner_id == self.team2_id:
            loser_id = self.team1_id
        else:
            raise InvalidResult(
                f"Team {winner_id} does not play in match {self.id}"
            )
        return replace(self, result=Decided(winner_id=winner_id, loser_id=loser_id))


@dataclass(frozen=True)
class Podium:
    first: Team
    second: Team
    third: Team
    fourth: Team

    def as_list(self):
        return [self.first, self.second, self.third, self.fourth]


@dataclass(frozen=True)
class MastersState:
    teams: Tuple[Team, ...] = ()
    matches: Tuple[Match, ...] = ()
    current_phase: Phase = Phase.GROUPS
    pool: Tuple[str, ...] = field(default_factory=tuple)

    def team(self, team_id: str) -> Optional[Team]:
        return next((t for t in self.teams if t.id == team_id), None)

    def teams_in(self, group: Group):
        return [t for t in self.teams if t.group == group]

    def matches_in(self, phase: Phase):
        return [m for m in self.matches if m.phase == phase]

    def used_names(self):
        return {name for t in self.teams for name in t.players}

    # -- Serialisation -------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "teams": [_team_to_dict(t) for t in self.teams],
            "matches": [_match_to_dict(m) for m in self.matches],
            "current_phase": int(self.current_phase),
            "pool": list(self.pool),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MastersState":
        return cls(
            teams=tuple(_team_from_dict(t) for t in data.get("teams") or []),
            matches=tuple(_match_from_dict(m) for m in data.get("matches") or []),
            current_phase=Phase(data.get("current_phase") or Phase.GROUPS),
            pool=tuple(data.get("pool") or []),
        )


def _team_to_dict(t: Team) -> dict:
    return {
        "id": t.id,
        "player1_name": t.player1_name,
        "player2_name": t.player2_name,
        "group": t.group.value,
        "points": t.points,
        "games_won": t.games_won,
        "games_lost": t.games_lost,
        "sets_won": t.sets_won,
    }


def _team_from_dict(d: dict) -> Team:
    return Team(
        id=d["id"],
        player1_name=d["player1_name"],
        player2_name=d["player2_name"],
        group=Group(d["group"]),
        points=d.get("points", 0),
        games_won=d.get("games_won", 0),
        games_lost=d.get("games_lost", 0),
        sets_won=d.get("sets_won", 0),
    )


def _match_to_dict(m: Match) -> dict:
    return {
        "id": m.id,
        "phase": int(m.phase),
        "court_number": m.court_number,
        "team1_id": m.team1_id,
        "team2_id": m.team2_id,
        "winner_id": m.winner_id,
        "group": m.group.value if m.group else None,
    }


def _match_from_dict(d: dict) -> Match:
    match = Match(
        id=d["id"],
        phase=Phase(d["phase"]),
        court_number=d["court_number"],
        team1_id=d["team1_id"],
        team2_id=d["team2_id"],
        group=Group(d["group"]) if d.get("group") else None,
    )
    if d.get("winner_id"):
        match = match.decide(d["winner_id"])
    return match
