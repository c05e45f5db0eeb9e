from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database import LeagueMatchORM, LeaguePlayerORM, LeagueRegistrationORM, get_session
from league.functions import (
    add_registration, check_result_conflict, find_registration, next_court, ranking,
    record_match, shift_roster, update_registration,
)
from league.models import (
    GameResult, MatchRecord, Player, Registration, RegistrationType, Shift,
)
from masters.models import generate_id

router = APIRouter(prefix='/league', tags=['League'])

# -- Helpers -------------------------------------------------------------------

def _orm_to_player(p: LeaguePlayerORM) -> Player:
    return Player(
        id=p.id, name=p.name, phone=p.phone,
        total_points=p.total_points, games_played=p.games_played,
        is_approved=p.is_approved,
    )


def _orm_to_record(m: LeagueMatchORM) -> MatchRecord:
    return MatchRecord(
        id=m.id, date=m.date, shift=Shift(m.shift),
        court_number=m.court_number, game_number=m.game_number,
        player_ids=list(m.player_ids), result=GameResult(m.result),
        golden_point_won=m.golden_point_won,
    )


def _orm_to_registration(r: LeagueRegistrationORM) -> Registration:
    return Registration(
        id=r.id, player_id=r.player_id, shift=Shift(r.shift), date=r.date,
        has_partner=bool(r.has_partner), partner_id=r.partner_id, partner_name=r.partner_name,
        type=RegistrationType(r.type), is_waiting_list=bool(r.is_waiting_list),
        starting_court=r.starting_court,
    )


async def _players(session: AsyncSession):
    result = await session.execute(select(LeaguePlayerORM))
    return list(result.scalars())


async def _records(session: AsyncSession, date: Optional[str] = None):
    stmt = select(LeagueMatchORM)
    if date:
        stmt = stmt.where(LeagueMatchORM.date == date)
    result = await session.execute(stmt)
    return [_orm_to_record(m) for m in result.scalars()]


async def _registrations(session: AsyncSession, date: str, shift: Optional[Shift] = None):
    stmt = select(LeagueRegistrationORM).where(LeagueRegistrationORM.date == date)
    if shift:
        stmt = stmt.where(LeagueRegistrationORM.shift == shift.value)
    result = await session.execute(stmt)
    return [_orm_to_registration(r) for r in result.scalars()]


# Routes

@router.post("/players")
async def create_player(
    name: str = Form(...),
    phone: str = Form(...),
    session: AsyncSession = Depends(get_session),
):
    phone = "".join(phone.split())
    existing = await session.execute(select(LeaguePlayerORM).where(LeaguePlayerORM.phone == phone))
    if existing.scalars().first():
        raise HTTPException(status_code=400, detail="Phone number already in use")

    p_orm = LeaguePlayerORM(id=generate_id(), name=name.strip(), phone=phone,
                            total_points=0, games_played=0, is_approved=True)
    session.add(p_orm)
    await session.commit()
    return _orm_to_player(p_orm)


@router.get("/ranking")
async def get_ranking(shift: Optional[Shift] = None, session: AsyncSession = Depends(get_session)):
    players = [_orm_to_player(p) for p in await _players(session)]
    records = await _records(session) if shift else []
    return ranking(players, records, shift)


@router.get("/next-court")
async def get_next_court(
    player_id: str,
    date: str,
    shift: Shift,
    game_number: int,
    max_courts: int = 4,
    session: AsyncSession = Depends(get_session),
):
    previous = next(
        (r for r in await _records(session, date)
         if r.shift == shift and r.game_number == game_number - 1 and player_id in r.player_ids),
        None,
    )
    registration = find_registration(await _registrations(session, date), player_id, shift, date)
    starting_court = registration.starting_court if registration else None
    return {"court_number": next_court(previous, max_courts, starting_court)}


@router.post("/matches")
async def submit_match(
    date: str = Form(...),
    shift: Shift = Form(...),
    court_number: int = Form(...),
    game_number: int = Form(...),
    player_id: str = Form(...),
    partner_id: Optional[str] = Form(None),
    result: GameResult = Form(...),
    golden_point_won: Optional[bool] = Form(None),
    session: AsyncSession = Depends(get_session),
):
    player_ids = [player_id] + ([partner_id] if partner_id else [])
    record = MatchRecord(
        id=generate_id(), date=date, shift=shift,
        court_number=court_number, game_number=game_number,
        player_ids=player_ids, result=result,
        golden_point_won=golden_point_won if result == GameResult.DRAW else None,
    )

    conflict = check_result_conflict(await _records(session, date), record)
    if conflict:
        raise HTTPException(status_code=409, detail={"message": conflict.message, "detail": conflict.detail})

    players_map = {p.id: p for p in await _players(session)}
    if any(pid not in players_map for pid in player_ids):
        raise HTTPException(status_code=404, detail="Player not found")

    players = {pid: _orm_to_player(p) for pid, p in players_map.items()}
    points = record_match(players, record)
    for pid in player_ids:
        players_map[pid].total_points = players[pid].total_points
        players_map[pid].games_played = players[pid].games_played

    session.add(LeagueMatchORM(
        id=record.id, date=record.date, shift=record.shift.value,
        court_number=record.court_number, game_number=record.game_number,
        result=record.result.value, player_ids=record.player_ids,
        golden_point_won=record.golden_point_won,
    ))
    await session.commit()
    return {"id": record.id, "points": points}


@router.get("/registrations")
async def list_registrations(date: str, shift: Shift, session: AsyncSession = Depends(get_session)):
    confirmed, waiting = shift_roster(await _registrations(session, date, shift), date, shift)
    return {"confirmed": confirmed, "waiting_list": waiting}


@router.post("/registrations")
async def create_registration(
    player_id: str = Form(...),
    date: str = Form(...),
    shift: Shift = Form(...),
    type: RegistrationType = Form(RegistrationType.GAME),
    partner_id: Optional[str] = Form(None),
    partner_name: Optional[str] = Form(None),
    is_waiting_list: bool = Form(False),
    starting_court: Optional[int] = Form(None),
    session: AsyncSession = Depends(get_session),
):
    for pid in filter(None, (player_id, partner_id)):
        if await session.get(LeaguePlayerORM, pid) is None:
            raise HTTPException(status_code=404, detail="Player not found")

    partner_name = partner_name.strip() if partner_name else None
    registration = Registration(
        id=generate_id(), player_id=player_id, shift=shift, date=date,
        has_partner=bool(partner_id or partner_name),
        partner_id=partner_id, partner_name=partner_name, type=type,
        is_waiting_list=is_waiting_list, starting_court=starting_court,
    )
    if not add_registration(await _registrations(session, date, shift), registration):
        raise HTTPException(status_code=409, detail="Player already registered for this shift")

    session.add(LeagueRegistrationORM(
        id=registration.id, player_id=registration.player_id,
        shift=registration.shift.value, date=registration.date,
        has_partner=registration.has_partner, partner_id=registration.partner_id,
        partner_name=registration.partner_name, type=registration.type.value,
        is_waiting_list=registration.is_waiting_list,
        starting_court=registration.starting_court,
    ))
    await session.commit()
    return registration


@router.post("/registrations/{registration_id}")
async def edit_registration(
    registration_id: str,
    is_waiting_list: Optional[bool] = Form(None),
    starting_court: Optional[int] = Form(None),
    session: AsyncSession = Depends(get_session),
):
    r_orm = await session.get(LeagueRegistrationORM, registration_id)
    if not r_orm:
        raise HTTPException(status_code=404, detail="Registration not found")

    changes = {}
    if is_waiting_list is not None:
        changes["is_waiting_list"] = is_waiting_list
    if starting_court is not None:
        changes["starting_court"] = starting_court
    registration = update_registration([_orm_to_registration(r_orm)], registration_id, **changes)

    r_orm.is_waiting_list = registration.is_waiting_list
    r_orm.starting_court = registration.starting_court
    await session.commit()
    return registration


@router.post("/registrations/{registration_id}/delete")
async def delete_registration(registration_id: str, session: AsyncSession = Depends(get_session)):
    r_orm = await session.get(LeagueRegistrationORM, registration_id)
    if not r_orm:
        raise HTTPException(status_code=404, detail="Registration not found")
    await session.delete(r_orm)
    await session.commit()
    return {"deleted": registration_id}
