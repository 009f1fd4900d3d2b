import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from arena.api.routes import router, ws_router
from arena.config import get_settings
from arena.services.connections import ConnectionHub
from arena.services.debate.cancellation import CancellationRegistry
from arena.services.session_manager import DebateSessionManager

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# LIFESPAN: Startup and Shutdown Logic
# =============================================================================
#
# - Before 'yield': build the shared debate infrastructure (one hub, one
#   cancellation registry, one session manager for the whole process)
# - After 'yield': cancel debates still running so no background task
#   outlives the server
#
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""

    # === STARTUP ===
    hub = ConnectionHub()
    registry = CancellationRegistry()
    app.state.hub = hub
    app.state.session_manager = DebateSessionManager(registry, hub, settings)
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; debates will fail until it is configured")
    logger.info(
        f"Arena ready: turn delay {settings.turn_delay_seconds}s, "
        f"default rounds {settings.default_rounds}"
    )

    yield

    # === SHUTDOWN ===
    await app.state.session_manager.shutdown()


app = FastAPI(
    title="Socratic Arena",
    description="Critic vs. Defender debates over an uploaded document, streamed live",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.client_origin],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(ws_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
