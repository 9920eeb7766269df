"""Main entry point for the Flipbook Viewer API."""
import json
import logging
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from config import CORS_ORIGINS, LOG_FORMAT, LOG_LEVEL, PORT
from logger import setup_logging
from models.api import (
    CreateSessionRequest,
    DimensionsModel,
    ErrorModel,
    LayoutResponse,
    NavigateRequest,
    PageResponse,
    ProgressModel,
    SessionStateResponse,
    SwipeRequest,
    SwipeResponse,
    ViewportModel,
)
from models.render import Viewport
from services.document_renderer import DocumentRenderer
from services.errors import MagazineNotFound, MagazineNotReadable, RendererError, SourceUnavailable
from services.layout import dimensions, dimensions_for, is_compact, navigation_hint
from services.magazine_repository import MagazineRepository
from services.render_session import progress
from services.viewer_sessions import CLOSED, ViewerSession, ViewerSessionManager

# Initialize logging
setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Flipbook Viewer",
    description="Renders PDF magazines into page-flip rasters for the reader UI",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
session_manager: ViewerSessionManager = None

# Seconds without a new snapshot before an SSE keep-alive comment
EVENTS_KEEPALIVE_SECONDS = 15.0


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global session_manager

    logger.info("Initializing Flipbook Viewer services...")

    magazine_repository = None
    try:
        magazine_repository = MagazineRepository()
    except ValueError as e:
        logger.warning(f"Magazine lookups disabled: {e}")

    session_manager = ViewerSessionManager(DocumentRenderer(), magazine_repository)
    logger.info("All services initialized successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop every render loop."""
    if session_manager is not None:
        await session_manager.close_all()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Flipbook Viewer API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "flipbook-viewer",
        "version": "1.0.0",
        "open_sessions": len(session_manager.sessions) if session_manager else 0
    }


@app.get("/layout", response_model=LayoutResponse)
async def layout_endpoint(
    width: float = Query(..., ge=0),
    height: float = Query(..., ge=0)
) -> LayoutResponse:
    """Flipbook dimensions for a viewport."""
    compact = is_compact(width)
    size = dimensions(width, height, compact)
    return LayoutResponse(
        is_compact=compact,
        dimensions=DimensionsModel(width=size.width, height=size.height),
        navigation_hint=navigation_hint(compact)
    )


@app.post("/viewer/sessions", response_model=SessionStateResponse, status_code=201)
async def create_session(request: CreateSessionRequest) -> SessionStateResponse:
    """
    Open a document for viewing.

    The response comes back as soon as the document is open; pages keep
    rendering in the background and show up in later state reads.
    """
    viewport = Viewport(request.viewport.width, request.viewport.height) if request.viewport else None

    try:
        entry = await session_manager.create(
            reference=request.reference,
            magazine_id=request.magazine_id,
            viewport=viewport
        )
    except MagazineNotFound as e:
        raise HTTPException(status_code=404, detail=_error_detail(e))
    except MagazineNotReadable as e:
        raise HTTPException(status_code=403, detail=_error_detail(e))
    except SourceUnavailable as e:
        logger.error(f"Source unavailable: {e.error.message}")
        raise HTTPException(status_code=422, detail=_error_detail(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error opening document: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")

    return _session_state(entry)


@app.get("/viewer/sessions/{session_id}", response_model=SessionStateResponse)
async def get_session(session_id: str) -> SessionStateResponse:
    return _session_state(_get_entry(session_id))


@app.get("/viewer/sessions/{session_id}/pages/{position}", response_model=PageResponse)
async def get_page(session_id: str, position: int) -> PageResponse:
    """One produced page by its position in the produced sequence."""
    entry = _get_entry(session_id)
    rasters = entry.session.rasters
    if position < 0 or position >= len(rasters):
        raise HTTPException(
            status_code=404,
            detail=f"Page {position} has not been produced ({len(rasters)} available)"
        )

    raster = rasters[position]
    return PageResponse(
        session_id=session_id,
        position=position,
        page_index=raster.page_index,
        data_url=raster.data_url,
        width=raster.width,
        height=raster.height
    )


@app.post("/viewer/sessions/{session_id}/navigate", response_model=SessionStateResponse)
async def navigate(session_id: str, request: NavigateRequest) -> SessionStateResponse:
    _get_entry(session_id)
    entry = session_manager.navigate(session_id, request.action, request.index)
    return _session_state(entry)


@app.post("/viewer/sessions/{session_id}/swipe", response_model=SwipeResponse)
async def swipe(session_id: str, request: SwipeRequest) -> SwipeResponse:
    """Apply a touch drag from the compact layout."""
    _get_entry(session_id)
    action = session_manager.swipe(
        session_id,
        (request.start.x, request.start.y),
        (request.end.x, request.end.y)
    )
    state = _session_state(session_manager.get(session_id))
    return SwipeResponse(**state.model_dump(), action=action)


@app.put("/viewer/sessions/{session_id}/viewport", response_model=SessionStateResponse)
async def update_viewport(session_id: str, request: ViewportModel) -> SessionStateResponse:
    _get_entry(session_id)
    entry = session_manager.update_viewport(session_id, request.width, request.height)
    return _session_state(entry)


@app.delete("/viewer/sessions/{session_id}", status_code=204)
async def close_session(session_id: str):
    try:
        await session_manager.close(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")


@app.get("/viewer/sessions/{session_id}/events")
async def session_events(session_id: str):
    """
    Stream session snapshots as Server-Sent Events.

    Each event is `data: {"type": "state", "data": {...}}`; a comment line is
    sent as keep-alive when nothing changed for a while. The stream ends after
    the session is closed.
    """
    entry = _get_entry(session_id)

    async def generate_stream():
        version = None
        while True:
            new_version = await entry.wait_for_update(version, timeout=EVENTS_KEEPALIVE_SECONDS)
            if new_version == version:
                yield b": keepalive\n\n"
                continue

            version = new_version
            state = _session_state(entry)
            yield f"data: {json.dumps({'type': 'state', 'data': state.model_dump()})}\n\n".encode('utf-8')

            if entry.status == CLOSED:
                return

    return StreamingResponse(
        generate_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"  # Disable buffering in nginx
        }
    )


def _get_entry(session_id: str) -> ViewerSession:
    try:
        return session_manager.get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")


def _error_detail(e: RendererError) -> dict:
    return {
        "error": {
            "code": e.error.code,
            "message": e.error.message,
            "details": e.error.details
        }
    }


def _session_state(entry: ViewerSession) -> SessionStateResponse:
    """Build the shell-facing view of a session."""
    session = entry.session
    current = progress(session)

    size = None
    hint = None
    if session.viewport is not None:
        size = dimensions_for(session.viewport)
        hint = navigation_hint(is_compact(session.viewport.width))

    return SessionStateResponse(
        session_id=entry.session_id,
        reference=session.reference,
        status=entry.status,
        message=entry.message,
        total_pages=session.total_pages,
        produced_pages=session.produced_count,
        failed_pages=list(session.failed_pages),
        current_index=session.current_index,
        progress=ProgressModel(
            current=current.current,
            total=current.total,
            ratio=current.ratio,
            can_go_prev=current.can_go_prev,
            can_go_next=current.can_go_next
        ),
        dimensions=DimensionsModel(width=size.width, height=size.height) if size else None,
        navigation_hint=hint,
        error=ErrorModel(**vars(entry.error)) if entry.error else None
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Flipbook Viewer API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
