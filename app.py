from __future__ import annotations
import asyncio
import os
import sys
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse, FileResponse, RedirectResponse
from fastapi.middleware.cors import CORSMiddleware

from indexer import Indexer, Settings

# Global server state; the indexer owns the cache and the published video list
STATE: Dict[str, Any] = {}


def api_success(data=None, message: str = "OK", status_code: int = 200):
    return JSONResponse({"status": "success", "message": message, "data": data}, status_code=status_code)


def raise_api_error(message: str, status_code: int = 400, data=None):
    raise HTTPException(status_code=status_code, detail={"status": "error", "message": message, "data": data})


def _indexer() -> Optional[Indexer]:
    return STATE.get("indexer")


@asynccontextmanager
async def lifespan(app_obj: FastAPI):  # type: ignore[override]
    settings = STATE.get("settings") or Settings.from_env()
    STATE["settings"] = settings
    idx = Indexer(settings)
    STATE["indexer"] = idx
    logging.getLogger().info("[startup] roots=%s cache=%s", ",".join(str(r) for r in settings.roots) or "-", settings.cache_dir)
    if settings.roots:
        idx.start()
    try:
        yield
    finally:
        # waiting for the worker to flush happens off the event loop
        finished = await asyncio.to_thread(idx.stop, settings.shutdown_grace)
        if not finished:
            logging.getLogger().warning("[shutdown] indexer did not finish within %.1fs", settings.shutdown_grace)


app = FastAPI(title="Video Indexer", version="1.0", lifespan=lifespan)
api = APIRouter(prefix="/api")


# -----------------------------
# CORS: allow UI from file:// or other hosts to call the API
# Configure via CORS_ALLOW_ORIGINS (comma-separated). Defaults to * for dev.
# -----------------------------
def _cors_origins() -> list[str]:
    v = os.environ.get("CORS_ALLOW_ORIGINS")
    if not v or not v.strip():
        return ["*"]
    out: list[str] = []
    for part in v.split(","):
        s = part.strip()
        if s:
            out.append(s)
    return out or ["*"]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, dict) and exc.detail.get("status") == "error":
        payload = exc.detail
        return JSONResponse(payload, status_code=exc.status_code)
    return JSONResponse({"status": "error", "message": str(exc.detail)}, status_code=exc.status_code)


@app.get("/", include_in_schema=False)
def index_redirect():
    return RedirectResponse(url="/api/videos", status_code=301)


@api.get("/health")
def health():
    idx = _indexer()
    return api_success({
        "videos": len(idx.videos) if idx else 0,
        "indexing": bool(idx and not idx.cancel.done and idx.settings.roots),
    })


@api.get("/videos")
def videos_list():
    idx = _indexer()
    items = [v.dump() for v in idx.videos.videos()] if idx else []
    items.sort(key=lambda d: (d.get("name") or "").lower())
    return api_success(items)


def _servable(p: Path) -> bool:
    """Only files under a scanned root or the cache dir are served."""
    settings: Optional[Settings] = STATE.get("settings")
    if settings is None:
        return False
    bases = [*settings.roots, settings.cache_dir]
    for base in bases:
        try:
            p.relative_to(Path(base).resolve())
            return True
        except ValueError:
            continue
    return False


@api.get("/content")
def content_get(path: str = Query(...)):
    try:
        p = Path(path).expanduser().resolve()
    except (OSError, RuntimeError):
        raise_api_error("invalid path", status_code=400)
    if not _servable(p):
        raise_api_error("path not allowed", status_code=403)
    if not p.is_file():
        raise_api_error("not found", status_code=404)
    return FileResponse(str(p))


app.include_router(api)


if __name__ == "__main__":
    try:
        import uvicorn  # type: ignore
    except ImportError:
        sys.stderr.write("[app] Missing dependency: uvicorn. Install with: pip install uvicorn\n")
        sys.exit(1)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    settings = Settings.from_env()
    STATE["settings"] = settings
    uvicorn.run(app, host=settings.host, port=settings.port)
