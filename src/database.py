import os
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from dotenv import load_dotenv
from asyncpg import Connection
from uuid import uuid4
from sqlalchemy import (
    Boolean, Column, Integer, String,
    func, DateTime,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

load_dotenv()

POSTGRES_USER = os.getenv("POSTGRES_USER")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD")
POSTGRES_DB = os.getenv("POSTGRES_DB_URL")

# Key of the single row holding the whole Masters aggregate
MASTERS_STATE_KEY = os.getenv("MASTERS_STATE_KEY", "masters")

class Base(DeclarativeBase): pass

postgres_file_name = f"{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_DB}"

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{postgres_file_name}"
    )

class FixedConnection(Connection):
    def _get_unique_id(self, prefix: str) -> str:
        return f'__asyncpg_{prefix}_{uuid4()}__'


engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
    connect_args={
        "statement_cache_size": 0,
        "prepared_statement_cache_size": 0,
        "connection_class": FixedConnection,
    }
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def get_session():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

#ORM

class MastersStateORM(Base):
    __tablename__ = "masters_state"

    key           = Column(String, primary_key=True)
    teams         = Column(JSONB, nullable=False, default=list)
    matches       = Column(JSONB, nullable=False, default=list)
    pool          = Column(JSONB, nullable=False, default=list)   # list[str] -- eligible names
    current_phase = Column(Integer, nullable=False, default=1)
    revision      = Column(Integer, nullable=False, default=0)
    updated_at    = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class LeaguePlayerORM(Base):
    __tablename__ = "league_players"

    id            = Column(String, primary_key=True)
    name          = Column(String, nullable=False)
    phone         = Column(String, nullable=False, unique=True)
    total_points  = Column(Integer, nullable=False, default=0)
    games_played  = Column(Integer, nullable=False, default=0)
    is_approved   = Column(Boolean, nullable=False, default=True)
    created_at    = Column(DateTime(timezone=True), server_default=func.now())


class LeagueMatchORM(Base):
    __tablename__ = "league_matches"

    id               = Column(String, primary_key=True)
    date             = Column(String, nullable=False)   # YYYY-MM-DD of the Sunday
    shift            = Column(String, nullable=False)
    court_number     = Column(Integer, nullable=False)
    game_number      = Column(Integer, nullable=False)
    result           = Column(String, nullable=False)   # WIN | DRAW | LOSS
    player_ids       = Column(JSONB, nullable=False)   # list[str] -- player ids
    golden_point_won = Column(Boolean, nullable=True)
    created_at       = Column(DateTime(timezone=True), server_default=func.now())


class LeagueRegistrationORM(Base):
    __tablename__ = "league_registrations"

    id              = Column(String, primary_key=True)
    player_id       = Column(String, nullable=False, index=True)
    shift           = Column(String, nullable=False)
    date            = Column(String, nullable=False)   # YYYY-MM-DD of the Sunday
    has_partner     = Column(Boolean, default=False)
    partner_id      = Column(String, nullable=True)
    partner_name    = Column(String, nullable=True)
    type            = Column(String, nullable=False, default="game")   # game | training
    is_waiting_list = Column(Boolean, default=False)
    starting_court  = Column(Integer, nullable=True)
    created_at      = Column(DateTime(timezone=True), server_default=func.now())
