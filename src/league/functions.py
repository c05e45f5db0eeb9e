from dataclasses import replace
from typing import Dict, List, Optional

from league.models import (
    POINTS_MAP, Conflict, GameResult, MatchRecord, Player, RankingRow, Registration, Shift,
)


def points_for(result: GameResult) -> int:
    return POINTS_MAP.get(GameResult(result), 0)


def record_match(players: Dict[str, Player], record: MatchRecord) -> int:
    """Credit every player of the record with its points; returns the points awarded."""
    points = points_for(record.result)
    for pid in record.player_ids:
        player = players.get(pid)
        if player is None:
            continue
        player.total_points += points
        player.games_played += 1
    return points


def ranking(players: List[Player], records: List[MatchRecord],
            shift: Optional[Shift] = None) -> List[RankingRow]:
    if shift is None:
        rows = [RankingRow(id=p.id, name=p.name, points=p.total_points, games=p.games_played)
                for p in players]
        rows.sort(key=lambda r: -r.points)
    else:
        points = {p.id: 0 for p in players}
        games = {p.id: 0 for p in players}
        for record in records:
            if record.shift != shift:
                continue
            pts = points_for(record.result)
            for pid in record.player_ids:
                if pid in points:
                    points[pid] += pts
                    games[pid] += 1
        rows = [RankingRow(id=p.id, name=p.name, points=points[p.id], games=games[p.id])
                for p in players]
        rows.sort(key=lambda r: (-r.points, -r.games))

    for i, row in enumerate(rows):
        row.rank = i + 1
    return rows


def _same_slot(record: MatchRecord, date: str, shift: Shift, game: int, court: int) -> bool:
    return (record.date == date and record.shift == shift
            and record.game_number == game and record.court_number == court)


def check_result_conflict(records: List[MatchRecord], submission: MatchRecord) -> Optional[Conflict]:
    """
    Compare a team's submitted result with what was already reported for the
    same game and court. Returns the first conflict found, or None.
    """
    if submission.result == GameResult.DRAW and submission.golden_point_won is None:
        return Conflict("Golden point missing", "A draw must state who won the golden point.")

    existing = [r for r in records if _same_slot(
        r, submission.date, submission.shift, submission.game_number, submission.court_number)]

    mine = set(submission.player_ids)
    for record in existing:
        if mine & set(record.player_ids):
            return Conflict("Result already submitted",
                            "Your team already entered the result for this game and court.")

    for record in existing:
        theirs, ours = record.result, submission.result
        message = ""
        if theirs == GameResult.WIN and ours == GameResult.WIN:
            message = "The opposing team already reported a win."
        elif theirs == GameResult.WIN and ours == GameResult.DRAW:
            message = "The opposing team reported a win, it cannot be a draw."
        elif theirs == GameResult.LOSS and ours == GameResult.DRAW:
            message = "The opposing team reported a loss, it cannot be a draw."
        elif theirs == GameResult.DRAW and ours != GameResult.DRAW:
            message = "The opposing team reported a draw."
        elif theirs == GameResult.DRAW and ours == GameResult.DRAW \
                and record.golden_point_won == submission.golden_point_won:
            message = ("Both teams claimed the golden point." if submission.golden_point_won
                       else "Both teams conceded the golden point.")
        if message:
            return Conflict(message, f"Conflict with players {', '.join(record.player_ids)}")

    return None


def next_court(previous: Optional[MatchRecord], max_courts: int,
               starting_court: Optional[int] = None) -> int:
    """
    Ladder movement: winners move one court up, losers one court down.
    The first game of a shift is played on the registration's starting court.
    """
    if previous is None:
        return min(max(starting_court or 1, 1), max_courts)

    move = 0
    if previous.result == GameResult.WIN:
        move = -1
    elif previous.result == GameResult.LOSS:
        move = 1
    elif previous.result == GameResult.DRAW:
        if previous.golden_point_won is True:
            move = -1
        elif previous.golden_point_won is False:
            move = 1

    return min(max(previous.court_number + move, 1), max_courts)


# -- Registrations ---------------------------------------------------------------

def find_registration(registrations: List[Registration], player_id: str,
                      shift: Shift, date: str) -> Optional[Registration]:
    """A player's sign-up for a shift, as the main player or as the partner."""
    for reg in registrations:
        if reg.shift == shift and reg.date == date \
                and player_id in (reg.player_id, reg.partner_id):
            return reg
    return None


def add_registration(registrations: List[Registration], registration: Registration) -> bool:
    """Append the sign-up unless the player is already registered for that shift and date."""
    for reg in registrations:
        if (reg.player_id == registration.player_id and reg.shift == registration.shift
                and reg.date == registration.date):
            return False
    registrations.append(registration)
    return True


def update_registration(registrations: List[Registration], registration_id: str,
                        **changes) -> Optional[Registration]:
    for i, reg in enumerate(registrations):
        if reg.id == registration_id:
            registrations[i] = replace(reg, **changes)
            return registrations[i]
    return None


def shift_roster(registrations: List[Registration], date: str, shift: Shift):
    """Split a shift's sign-ups into (confirmed, waiting list)."""
    confirmed, waiting = [], []
    for reg in registrations:
        if reg.date != date or reg.shift != shift:
            continue
        (waiting if reg.is_waiting_list else confirmed).append(reg)
    return confirmed, waiting
