import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .core.config import get_settings
from .core.logging_setup import configure_logging
from .db.session import async_engine
from .db.utils import normalize_database_url, redact_database_url
from .features.users.cache import UserCache

settings = get_settings()
logger = logging.getLogger(__name__)


async def _user_cache_sweeper_loop(cache: UserCache, interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(max(1, interval_seconds))
        try:
            removed = cache.purge_expired()
            if removed:
                logger.debug("Purged %d expired user cache entries.", removed)
        except Exception:
            logger.warning("User cache sweep failed; retrying next interval.", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info(
        "Starting careline against %s",
        redact_database_url(normalize_database_url(settings.database_dsn)),
    )
    app.state.user_cache = UserCache(ttl_seconds=settings.user_cache_ttl_seconds)
    sweeper_task: asyncio.Task[None] | None = None
    if settings.user_cache_sweep_interval_seconds > 0:
        sweeper_task = asyncio.create_task(
            _user_cache_sweeper_loop(
                app.state.user_cache,
                settings.user_cache_sweep_interval_seconds,
            )
        )
    try:
        yield
    finally:
        if sweeper_task is not None:
            sweeper_task.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper_task
        app.state.user_cache.clear()
        await async_engine.dispose()


app = FastAPI(title="Careline API", docs_url="/api/docs", lifespan=lifespan)
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def read_root() -> dict:
    return {"status": "ok", "service": "careline"}


@app.get("/health")
async def health_check() -> dict:
    return {"healthy": True}
