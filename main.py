import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

import models  # noqa: F401  registers the tables on Base.metadata
from database import Base, SessionLocal, engine, settings
from api import rooms, stories, users, voting_systems, websocket
from core.room_manager import RoomManager

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


def purge_idle_rooms_once() -> list[str]:
    db = SessionLocal()
    try:
        return RoomManager.purge_idle_rooms(db, timedelta(minutes=settings.room_idle_ttl_minutes))
    finally:
        db.close()


async def purge_idle_rooms_forever():
    while True:
        await asyncio.sleep(settings.idle_purge_interval_seconds)
        try:
            await run_in_threadpool(purge_idle_rooms_once)
        except Exception as e:
            logger.error(f"Idle room purge failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create the tables
    Base.metadata.create_all(bind=engine)

    purge_task = None
    if settings.room_idle_ttl_minutes > 0:
        purge_task = asyncio.create_task(purge_idle_rooms_forever())
        logger.info(f"Idle rooms are purged after {settings.room_idle_ttl_minutes} minutes")

    yield

    # Shutdown
    if purge_task:
        purge_task.cancel()


app = FastAPI(
    title="Planning Poker API",
    description="Backend API for real-time planning poker estimation rooms",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(rooms.router)
app.include_router(stories.router)
app.include_router(users.router)
app.include_router(voting_systems.router)
app.include_router(websocket.router)


@app.get("/")
def root():
    return {"message": "Planning Poker API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
