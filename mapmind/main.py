from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
import logging

from mapmind.api.routes import router
from mapmind.config import settings_from_env
from mapmind.rounds.startup import init_rounds_for_app

app = FastAPI(title="mapmind", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=settings_from_env().log_level)
logger = logging.getLogger(__name__)

# Serve the spectator UI (no build step).
# In some test/CI environments the public directory may be absent; don't fail import.
from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent

_public_dir = _project_root / "public"


@app.on_event("startup")
async def _startup() -> None:
    init_rounds_for_app()


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "mapmind", "version": "0.1.0"}


# Mounted last so API and WebSocket routes take precedence over static files at "/".
if _public_dir.exists():
    app.mount("/", StaticFiles(directory=str(_public_dir), html=True), name="ui")
