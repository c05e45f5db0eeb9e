"""
Persistence and realtime propagation of the Masters aggregate.

The whole aggregate lives in one row keyed by `MASTERS_STATE_KEY` and is
always replaced as a unit. Every save bumps the row revision and publishes
the new snapshot on the change feed.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from database import MASTERS_STATE_KEY, MastersStateORM
from masters.models import MastersState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    revision: int
    state: MastersState


class ChangeFeed:
    """
    In-process fan-out of saved snapshots to connected readers.

    Each queue is bound to the event loop it was subscribed from; snapshots
    published from another loop or thread are handed over through that loop.
    """

    def __init__(self, maxsize: int = 16):
        self._maxsize = maxsize
        self._subscribers: Dict[asyncio.Queue, Optional[asyncio.AbstractEventLoop]] = {}

    def subscribe(self) -> asyncio.Queue:
        queue = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers[queue] = _running_loop()
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        self._subscribers.pop(queue, None)

    def publish(self, snapshot: Snapshot):
        current = _running_loop()
        for queue, loop in list(self._subscribers.items()):
            if loop is None or loop is current:
                self._deliver(queue, snapshot)
                continue
            try:
                loop.call_soon_threadsafe(self._deliver, queue, snapshot)
            except RuntimeError:
                logger.debug("Dropping subscriber of a closed event loop")
                self.unsubscribe(queue)

    @staticmethod
    def _deliver(queue: asyncio.Queue, snapshot: Snapshot):
        if queue.full():
            # Slow reader: only the latest snapshot matters
            queue.get_nowait()
        queue.put_nowait(snapshot)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


feed = ChangeFeed()


class SqlMastersStore:
    def __init__(self, session: AsyncSession, changes: ChangeFeed = feed,
                 key: str = MASTERS_STATE_KEY):
        self.session = session
        self.changes = changes
        self.key = key

    async def load_snapshot(self) -> Snapshot:
        row = await self.session.get(MastersStateORM, self.key)
        if row is None:
            return Snapshot(revision=0, state=MastersState())
        return Snapshot(revision=row.revision, state=MastersState.from_dict({
            "teams": row.teams,
            "matches": row.matches,
            "current_phase": row.current_phase,
            "pool": row.pool,
        }))

    async def load(self) -> MastersState:
        return (await self.load_snapshot()).state

    async def save(self, state: MastersState) -> Snapshot:
        stmt = upsert_statement(self.key, state)
        revision = (await self.session.execute(stmt)).scalar_one()
        await self.session.commit()

        snapshot = Snapshot(revision=revision, state=state)
        logger.debug("Masters state saved at revision %d", revision)
        self.changes.publish(snapshot)
        return snapshot


def upsert_statement(key: str, state: MastersState):
    """INSERT ... ON CONFLICT replacing the whole aggregate and bumping its revision."""
    stmt = insert(MastersStateORM).values(key=key, revision=1, **state.to_dict())
    return stmt.on_conflict_do_update(
        index_elements=[MastersStateORM.key],
        set_={
            "teams": stmt.excluded.teams,
            "matches": stmt.excluded.matches,
            "pool": stmt.excluded.pool,
            "current_phase": stmt.excluded.current_phase,
            "revision": MastersStateORM.revision + 1,
            # Column onupdate hooks do not fire on the conflict branch
            "updated_at": func.now(),
        },
    ).returning(MastersStateORM.revision)


class MemoryMastersStore:
    """Store keeping the aggregate in process memory."""

    def __init__(self, changes: Optional[ChangeFeed] = None,
                 state: Optional[MastersState] = None):
        self.changes = changes or ChangeFeed()
        self.snapshot = Snapshot(revision=0, state=state or MastersState())

    async def load_snapshot(self) -> Snapshot:
        return self.snapshot

    async def load(self) -> MastersState:
        return self.snapshot.state

    async def save(self, state: MastersState) -> Snapshot:
        self.snapshot = Snapshot(revision=self.snapshot.revision + 1, state=state)
        self.changes.publish(self.snapshot)
        return self.snapshot


class StateMirror:
    """
    Local copy of the aggregate kept by a client of `/masters/ws`.

    Not used by the server itself; Python consumers of the change stream pass
    each received frame to `receive`. Local
    writes are shown immediately; snapshots arriving from the feed win
    whenever their revision is at least the last confirmed one.
    """

    def __init__(self, snapshot: Optional[Snapshot] = None):
        self.confirmed = snapshot or Snapshot(revision=0, state=MastersState())
        self.pending: Optional[MastersState] = None

    @property
    def state(self) -> MastersState:
        return self.pending if self.pending is not None else self.confirmed.state

    def write(self, state: MastersState):
        self.pending = state

    def reconcile(self, snapshot: Snapshot) -> bool:
        """Apply a feed event; returns False when it is older than what we have."""
        if snapshot.revision < self.confirmed.revision:
            return False
        self.confirmed = snapshot
        self.pending = None
        return True

    def receive(self, frame: dict) -> bool:
        """Reconcile a JSON frame as sent by the change stream."""
        return self.reconcile(Snapshot(
            revision=frame["revision"], state=MastersState.from_dict(frame["state"]),
        ))
