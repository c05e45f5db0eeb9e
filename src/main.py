import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from database import create_tables
from league.router import router as league_router
from masters.router import router as masters_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    yield


app = FastAPI(title="Padel LevelUp", lifespan=lifespan)
app.include_router(masters_router)
app.include_router(league_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
