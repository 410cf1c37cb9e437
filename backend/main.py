"""FastAPI application for the ROI report service -- REST endpoints and SSE streaming."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional
from urllib.parse import quote

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel

from backend.config.settings import Settings
from backend.models.enums import ConclusionTab, FormLetter, ReportStatus
from backend.reports.aggregator import ReportLoadResult, load_report_result
from backend.reports.conclusion import generate_conclusion
from backend.reports.pdf_renderer import export_roi_pdf
from backend.services.form_data import load_form_data, save_form_data
from backend.services.projects import (
    create_project,
    delete_project,
    get_project,
    get_projects,
    initialize_project_from_default,
    update_project,
)
from backend.services.shared_fields import load_shared_fields
from backend.store import FormStore, StoreError, create_store
from backend.store.paths import InvalidKeyError
from backend.streaming import StreamManager

settings = Settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Singleton stream manager, one channel per user
stream_manager = StreamManager()

_store: Optional[FormStore] = None


def get_store() -> FormStore:
    """Process-wide store, created from settings on first use."""
    global _store
    if _store is None:
        _store = create_store(settings)
    return _store


def get_stream_manager() -> StreamManager:
    return stream_manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _store is not None:
        await _store.aclose()


app = FastAPI(title="ROI Report API", version="0.1.0", lifespan=lifespan)

# CORS -- allow the web front end
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ProjectCreate(BaseModel):
    name: str
    description: str = ""


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.exception(f"Store failure on {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Databasen är inte tillgänglig just nu. Försök igen senare."},
    )


@app.exception_handler(InvalidKeyError)
async def invalid_key_handler(request: Request, exc: InvalidKeyError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _ready_report(
    store: FormStore, user_id: str, project_id: Optional[str]
) -> ReportLoadResult:
    result = await load_report_result(store, user_id, project_id)
    if result.status == ReportStatus.NO_DATA:
        raise HTTPException(status_code=404, detail="Ingen rapportdata hittades.")
    if result.status == ReportStatus.STORE_ERROR:
        raise HTTPException(
            status_code=503,
            detail="Databasen är inte tillgänglig just nu. Försök igen senare.",
        )
    if result.status == ReportStatus.FAILED:
        raise HTTPException(status_code=500, detail="Rapporten kunde inte laddas.")
    return result


# ── Report ────────────────────────────────────────────────────────────────


@app.get("/api/users/{user_id}/report")
async def get_report(
    user_id: str,
    project_id: Optional[str] = None,
    store: FormStore = Depends(get_store),
):
    """Aggregated ROI report data."""
    result = await _ready_report(store, user_id, project_id)
    return result.data.to_dict()


@app.get("/api/users/{user_id}/report/conclusion")
async def get_report_conclusion(
    user_id: str,
    tab: ConclusionTab = ConclusionTab.ROI,
    project_id: Optional[str] = None,
    store: FormStore = Depends(get_store),
):
    """Narrative conclusion for one executive summary tab."""
    result = await load_report_result(store, user_id, project_id)
    if result.status in (ReportStatus.STORE_ERROR, ReportStatus.FAILED):
        raise HTTPException(
            status_code=503,
            detail="Databasen är inte tillgänglig just nu. Försök igen senare.",
        )
    return {"tab": tab.value, "text": generate_conclusion(result.data, tab)}


@app.get("/api/users/{user_id}/report/pdf")
async def get_report_pdf(
    user_id: str,
    project_id: Optional[str] = None,
    store: FormStore = Depends(get_store),
):
    """The report as a downloadable PDF."""
    result = await _ready_report(store, user_id, project_id)
    try:
        export = await export_roi_pdf(result.data, store, user_id, project_id)
    except Exception:
        logger.exception(f"PDF export failed for user {user_id}")
        raise HTTPException(
            status_code=500,
            detail="Det gick inte att skapa PDF-rapporten. Försök igen senare.",
        )
    return Response(
        content=export.content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(export.filename)}"
        },
    )


# ── Forms ─────────────────────────────────────────────────────────────────


@app.get("/api/users/{user_id}/forms/{letter}")
async def get_form(
    user_id: str,
    letter: FormLetter,
    project_id: Optional[str] = None,
    store: FormStore = Depends(get_store),
):
    data = await load_form_data(store, user_id, letter, project_id)
    if data is None:
        raise HTTPException(status_code=404, detail=f"Formulär {letter.value} saknas.")
    return data


@app.put("/api/users/{user_id}/forms/{letter}")
async def put_form(
    user_id: str,
    letter: FormLetter,
    data: dict[str, Any] = Body(...),
    project_id: Optional[str] = None,
    store: FormStore = Depends(get_store),
    streams: StreamManager = Depends(get_stream_manager),
):
    """Save a form; identity fields are mirrored into shared fields."""
    return await save_form_data(
        store, user_id, letter, data, project_id=project_id, stream_manager=streams
    )


@app.get("/api/users/{user_id}/shared-fields")
async def get_shared_fields(
    user_id: str,
    project_id: Optional[str] = None,
    store: FormStore = Depends(get_store),
):
    shared = await load_shared_fields(store, user_id, project_id)
    if shared is None:
        raise HTTPException(status_code=404, detail="Inga gemensamma uppgifter hittades.")
    return shared.to_dict()


# ── Projects ──────────────────────────────────────────────────────────────


@app.get("/api/users/{user_id}/projects")
async def list_projects(user_id: str, store: FormStore = Depends(get_store)):
    return [project.to_store() for project in await get_projects(store, user_id)]


@app.post("/api/users/{user_id}/projects", status_code=201)
async def post_project(
    user_id: str,
    body: ProjectCreate,
    store: FormStore = Depends(get_store),
    streams: StreamManager = Depends(get_stream_manager),
):
    project = await create_project(
        store, user_id, body.name, body.description, stream_manager=streams
    )
    return project.to_store()


@app.get("/api/users/{user_id}/projects/{project_id}")
async def read_project(user_id: str, project_id: str, store: FormStore = Depends(get_store)):
    project = await get_project(store, user_id, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Projektet hittades inte.")
    return project.to_store()


@app.patch("/api/users/{user_id}/projects/{project_id}")
async def patch_project(
    user_id: str,
    project_id: str,
    body: ProjectUpdate,
    store: FormStore = Depends(get_store),
    streams: StreamManager = Depends(get_stream_manager),
):
    project = await update_project(
        store,
        user_id,
        project_id,
        name=body.name,
        description=body.description,
        stream_manager=streams,
    )
    if project is None:
        raise HTTPException(status_code=404, detail="Projektet hittades inte.")
    return project.to_store()


@app.delete("/api/users/{user_id}/projects/{project_id}", status_code=204)
async def remove_project(
    user_id: str,
    project_id: str,
    store: FormStore = Depends(get_store),
    streams: StreamManager = Depends(get_stream_manager),
):
    await delete_project(store, user_id, project_id, stream_manager=streams)
    return Response(status_code=204)


@app.post("/api/users/{user_id}/projects/{project_id}/initialize")
async def initialize_project(
    user_id: str, project_id: str, store: FormStore = Depends(get_store)
):
    """Copy the user's default forms into the project."""
    if await get_project(store, user_id, project_id) is None:
        raise HTTPException(status_code=404, detail="Projektet hittades inte.")
    initialized = await initialize_project_from_default(store, user_id, project_id)
    return {"projectId": project_id, "initialized": initialized}


# ── Events ────────────────────────────────────────────────────────────────


@app.get("/api/users/{user_id}/events")
async def stream_events(
    user_id: str,
    request: Request,
    streams: StreamManager = Depends(get_stream_manager),
):
    """SSE endpoint -- streams form and project change events."""
    last_event_id: int | None = None
    raw = request.headers.get("Last-Event-ID") or request.headers.get("last-event-id")
    if raw is not None:
        try:
            last_event_id = int(raw)
        except ValueError:
            logger.warning(f"Ignoring non-numeric Last-Event-ID {raw!r}")

    generator = streams.event_generator(user_id, last_event_id=last_event_id)
    return StreamingResponse(generator, media_type="text/event-stream")


@app.get("/health")
async def health(store: FormStore = Depends(get_store)):
    """Health check endpoint."""
    try:
        store_ok = await store.health_check()
    except StoreError:
        logger.warning("Store health check failed", exc_info=True)
        store_ok = False
    return {"status": "ok", "store": store_ok}
