from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse

from designgen.models.requests import (
    CreateSessionRequest,
    GenerateRequest,
    RenderRequest,
    RenderResponse,
    SessionSnapshot,
)
from designgen.models.schemas import Artboard, PoolImage
from designgen.services.design_orchestrator import DesignOrchestrator, GenerationResult
from designgen.services.session_store import DesignSession, SessionStore

router = APIRouter()


ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/webp",
    "image/gif",
}


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_orchestrator(request: Request) -> DesignOrchestrator:
    return request.app.state.orchestrator


def _snapshot(session: DesignSession) -> SessionSnapshot:
    return SessionSnapshot(
        id=session.id,
        artboard=session.artboard,
        concept=session.concept,
        document=session.document,
        pool=session.pool,
        transcript=session.transcript.entries,
        generation_count=session.generation_count,
    )


@router.post("/api/sessions", response_model=SessionSnapshot, status_code=201)
async def create_session(
    request: Request,
    body: CreateSessionRequest | None = None,
    sessions: SessionStore = Depends(get_sessions),
) -> SessionSnapshot:
    """Start a new design session with an empty image pool."""
    artboard = body.artboard if body and body.artboard else None
    if artboard is None:
        settings = request.app.state.settings
        artboard = Artboard(
            width=settings.default_artboard_width,
            height=settings.default_artboard_height,
        )
    return _snapshot(sessions.create(artboard))


@router.get("/api/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session(
    session_id: str, sessions: SessionStore = Depends(get_sessions)
) -> SessionSnapshot:
    return _snapshot(sessions.get(session_id))


@router.delete("/api/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str, sessions: SessionStore = Depends(get_sessions)) -> None:
    sessions.delete(session_id)


@router.post("/api/sessions/{session_id}/generate", response_model=GenerationResult)
async def generate_design(
    session_id: str,
    body: GenerateRequest,
    sessions: SessionStore = Depends(get_sessions),
    orchestrator: DesignOrchestrator = Depends(get_orchestrator),
) -> GenerationResult:
    """
    Generate the next version of the session's design.

    Runs concept, structured design, image resolution and rendering. The
    session keeps its previous design if any step fails.
    """
    if not body.prompt.strip():
        raise HTTPException(status_code=400, detail="No prompt provided")

    session = sessions.get(session_id)
    return await orchestrator.generate(
        session,
        body.prompt,
        image_url=body.image_url,
        skip_concept=body.skip_concept,
        artboard=body.artboard,
    )


@router.post("/api/sessions/{session_id}/images", response_model=PoolImage, status_code=201)
async def upload_image(
    session_id: str,
    file: UploadFile = File(...),
    description: str | None = Form(None),
    sessions: SessionStore = Depends(get_sessions),
    orchestrator: DesignOrchestrator = Depends(get_orchestrator),
) -> PoolImage:
    """Add an uploaded image to the session image pool."""
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}",
        )

    image_data = await file.read()

    if not image_data:
        raise HTTPException(status_code=400, detail="Empty file uploaded")

    session = sessions.get(session_id)
    try:
        return await orchestrator.add_uploaded_image(
            session, image_data, file.filename or "image", description
        )
    except OSError as e:
        # Pillow could not decode the upload
        raise HTTPException(status_code=400, detail=f"Unreadable image: {e}") from e


@router.delete("/api/sessions/{session_id}/images/{image_id}", status_code=204)
async def remove_image(
    session_id: str, image_id: str, sessions: SessionStore = Depends(get_sessions)
) -> None:
    session = sessions.get(session_id)
    if session.pool.remove(image_id) is None:
        raise HTTPException(status_code=404, detail=f"Image not found: {image_id}")


@router.post("/api/render", response_model=RenderResponse)
async def render_design(
    body: RenderRequest, orchestrator: DesignOrchestrator = Depends(get_orchestrator)
) -> RenderResponse:
    return RenderResponse(html=orchestrator.render(body.document))


@router.get("/preview/{session_id}", response_class=HTMLResponse)
async def preview(
    request: Request,
    session_id: str,
    sessions: SessionStore = Depends(get_sessions),
    orchestrator: DesignOrchestrator = Depends(get_orchestrator),
) -> HTMLResponse:
    """Full page preview of the session's current design."""
    session = sessions.get(session_id)
    design_html = orchestrator.render(session.document) if session.document else ""
    return request.app.state.templates.TemplateResponse(
        request,
        "preview.html",
        {"session": session, "design_html": design_html},
    )
