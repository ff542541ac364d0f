from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from designgen.api.routes import router
from designgen.config import Settings, get_settings
from designgen.logging_config import setup_logging
from designgen.models.exceptions import (
    DesignGenError,
    ImageGenerationFailed,
    ModelGatewayError,
    SessionNotFound,
    UnknownImageReference,
)
from designgen.services.asset_store import LocalAssetStore
from designgen.services.design_orchestrator import DesignOrchestrator
from designgen.services.gemini_service import (
    GeminiBackgroundRemover,
    GeminiImageGenerator,
    GeminiService,
)
from designgen.services.html_renderer import HtmlRenderer
from designgen.services.image_resolver import ImageResolver
from designgen.services.model_gateway import ModelGateway
from designgen.services.session_store import SessionStore

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

ERROR_STATUS: list[tuple[type[DesignGenError], int]] = [
    (SessionNotFound, 404),
    (UnknownImageReference, 422),
    (ImageGenerationFailed, 502),
    (ModelGatewayError, 502),
]


def build_orchestrator(settings: Settings) -> DesignOrchestrator:
    store = LocalAssetStore(settings.storage_dir, f"{settings.public_base_url.rstrip('/')}/assets")
    gemini = GeminiService(
        api_key=settings.gemini_api_key,
        model=settings.gemini_image_model,
        max_retries=settings.image_max_retries,
    )
    resolver = ImageResolver(
        generator=GeminiImageGenerator(gemini, store),
        remover=GeminiBackgroundRemover(gemini, store),
    )
    return DesignOrchestrator(
        gateway=ModelGateway(),
        resolver=resolver,
        renderer=HtmlRenderer(),
        store=store,
        debug_dir=settings.debug_save_dir,
    )


async def design_error_handler(request: Request, exc: DesignGenError) -> JSONResponse:
    status_code = next(
        (status for error_type, status in ERROR_STATUS if isinstance(exc, error_type)), 500
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": exc.message, "details": exc.details},
    )


def create_app(
    settings: Settings | None = None,
    orchestrator: DesignOrchestrator | None = None,
    sessions: SessionStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title="Design Generation API",
        description="Generate graphic designs from prompts as structured layouts rendered to HTML",
        version="0.1.0",
    )

    app.state.settings = settings
    app.state.sessions = sessions or SessionStore()
    app.state.orchestrator = orchestrator or build_orchestrator(settings)
    app.state.templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

    app.add_exception_handler(DesignGenError, design_error_handler)
    app.include_router(router)
    app.mount(
        "/assets",
        StaticFiles(directory=settings.storage_dir, check_dir=False),
        name="assets",
    )

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        """Serve the test HTML page."""
        return app.state.templates.TemplateResponse(request, "index.html")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("designgen.main:app", host=settings.host, port=settings.port, reload=True)
