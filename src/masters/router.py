import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, WebSocket, WebSocketDisconnect
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database import AsyncSessionLocal, LeaguePlayerORM, get_session
from masters import registry
from masters.exceptions import IncompletePrerequisite, MastersError, UnknownMatch
from masters.models import GROUPS, Group, MastersState
from masters.standings import group_standings
from masters.store import ChangeFeed, Snapshot, SqlMastersStore, feed
from masters.tournament import (
    AddTeam, AutoFill, ImportPool, RecordResult, RemoveTeam, Reset,
    StartCrossRound, StartFinals, StartTournament, apply, podium, stage,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/masters', tags=['Masters'])


async def get_store(session: AsyncSession = Depends(get_session)):
    return SqlMastersStore(session)


async def read_current_snapshot() -> Snapshot:
    # Closed before streaming starts; readers hold no pooled connection
    async with AsyncSessionLocal() as session:
        return await SqlMastersStore(session).load_snapshot()


def get_snapshot_reader():
    return read_current_snapshot


def get_feed() -> ChangeFeed:
    return feed


async def get_member_names(session: AsyncSession = Depends(get_session)) -> List[str]:
    result = await session.execute(
        select(LeaguePlayerORM.name).where(LeaguePlayerORM.is_approved.is_(True))
    )
    return list(result.scalars())


# -- Helpers -------------------------------------------------------------------

def _team_view(team) -> dict:
    return {
        "id": team.id,
        "players": list(team.players),
        "group": team.group.value,
        "points": team.points,
        "games_won": team.games_won,
        "games_lost": team.games_lost,
        "differential": team.differential,
    }


def _state_view(state: MastersState, revision: int) -> dict:
    standings = group_standings(state)
    result = podium(state)
    return {
        "revision": revision,
        "stage": stage(state).value,
        "state": state.to_dict(),
        "standings": {
            group.value: [_team_view(t) for t in standings[group]] for group in GROUPS
        },
        "podium": [_team_view(t) for t in result.as_list()] if result else None,
    }


async def _run(store, command):
    state = await store.load()
    try:
        new_state = apply(state, command)
    except IncompletePrerequisite as e:
        raise HTTPException(status_code=409, detail={"warnings": e.warnings})
    except UnknownMatch as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MastersError as e:
        raise HTTPException(status_code=400, detail=str(e))
    snapshot = await store.save(new_state)
    return _state_view(snapshot.state, snapshot.revision)


# Routes

@router.get("/")
async def masters_view(store=Depends(get_store)):
    snapshot = await store.load_snapshot()
    return _state_view(snapshot.state, snapshot.revision)


@router.get("/available-players")
async def available_players(
    store=Depends(get_store),
    member_names: List[str] = Depends(get_member_names),
):
    state = await store.load()
    pool = registry.combined_pool(state.pool, member_names)
    return {"players": registry.available_names(state, pool)}


@router.post("/pool")
async def import_pool(names: str = Form(...), store=Depends(get_store)):
    return await _run(store, ImportPool(names=tuple(names.split("\n"))))


@router.post("/teams")
async def add_team(
    player1: str = Form(...),
    player2: str = Form(...),
    group: Group = Form(...),
    store=Depends(get_store),
):
    return await _run(store, AddTeam(player1=player1, player2=player2, group=group))


@router.post("/teams/{team_id}/delete")
async def remove_team(team_id: str, store=Depends(get_store)):
    return await _run(store, RemoveTeam(team_id=team_id))


@router.post("/teams/auto-fill")
async def auto_fill(
    seed: Optional[int] = Form(None),
    store=Depends(get_store),
    member_names: List[str] = Depends(get_member_names),
):
    state = await store.load()
    names = registry.combined_pool(state.pool, member_names)
    return await _run(store, AutoFill(names=tuple(names), seed=seed))


@router.post("/start")
async def start_tournament(force: bool = Form(False), store=Depends(get_store)):
    return await _run(store, StartTournament(force=force))


@router.post("/phase2")
async def start_phase2(force: bool = Form(False), store=Depends(get_store)):
    return await _run(store, StartCrossRound(force=force))


@router.post("/finals")
async def start_finals(force: bool = Form(False), store=Depends(get_store)):
    return await _run(store, StartFinals(force=force))


@router.post("/matches/{match_id}/result")
async def record_result(match_id: str, winner_id: str = Form(...), store=Depends(get_store)):
    return await _run(store, RecordResult(match_id=match_id, winner_id=winner_id))


@router.post("/reset")
async def reset(store=Depends(get_store)):
    return await _run(store, Reset())


@router.websocket("/ws")
async def changes(
    websocket: WebSocket,
    changes_feed: ChangeFeed = Depends(get_feed),
    read_snapshot=Depends(get_snapshot_reader),
):
    await websocket.accept()
    queue = changes_feed.subscribe()

    async def forward():
        while True:
            snapshot = await queue.get()
            await websocket.send_json(_state_view(snapshot.state, snapshot.revision))

    snapshot = await read_snapshot()
    await websocket.send_json(_state_view(snapshot.state, snapshot.revision))
    sender = asyncio.create_task(forward())
    try:
        # Readers never send; this only waits for the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Masters feed subscriber disconnected")
    finally:
        sender.cancel()
        changes_feed.unsubscribe(queue)
