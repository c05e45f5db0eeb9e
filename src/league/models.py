from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class Shift(str, Enum):
    MORNING_1 = "08:00 - 09:30"
    MORNING_2 = "09:30 - 11:00"
    MORNING_3 = "11:00 - 13:00"


class RegistrationType(str, Enum):
    GAME = "game"
    TRAINING = "training"


class GameResult(str, Enum):
    WIN = "WIN"
    DRAW = "DRAW"
    LOSS = "LOSS"


POINTS_MAP = {
    GameResult.WIN: 4,
    GameResult.DRAW: 2,
    GameResult.LOSS: 1,
}


@dataclass
class Player:
    id: str
    name: str
    phone: str
    total_points: int = 0
    games_played: int = 0
    is_approved: bool = True


@dataclass
class MatchRecord:
    id: str
    date: str
    shift: Shift
    court_number: int
    game_number: int
    player_ids: List[str]
    result: GameResult
    golden_point_won: Optional[bool] = None  # DRAW only


@dataclass
class Registration:
    id: str
    player_id: str
    shift: Shift
    date: str
    has_partner: bool = False
    partner_id: Optional[str] = None
    partner_name: Optional[str] = None   # partner outside the league
    type: RegistrationType = RegistrationType.GAME
    is_waiting_list: bool = False
    starting_court: Optional[int] = None


@dataclass
class RankingRow:
    id: str
    name: str
    points: int
    games: int
    rank: int = 0


@dataclass
class Conflict:
    message: str
    detail: str = ""
