import logging
import uuid
from pathlib import Path

from pydantic import BaseModel

from designgen.logging_config import generation_id_var, session_id_var
from designgen.models.conversation import ChatEntry, Message, user_turn
from designgen.models.exceptions import DesignGenError
from designgen.models.schemas import Artboard, DesignDocument, PoolImage, ResolvedDesign
from designgen.services.asset_store import LocalAssetStore
from designgen.services.conversation_builder import build_concept_request, build_design_request
from designgen.services.debug_saver import DebugSaver
from designgen.services.html_renderer import HtmlRenderer
from designgen.services.image_processor import image_processor
from designgen.services.image_resolver import ImageResolution, ImageResolver
from designgen.services.model_gateway import ModelGateway
from designgen.services.session_store import DesignSession

logger = logging.getLogger(__name__)


class GenerationResult(BaseModel):
    generation_id: str
    concept: str
    design: DesignDocument
    resolved: ResolvedDesign
    html: str
    images: list[ImageResolution]


class DesignOrchestrator:
    """Runs one design generation for a session and commits it on success."""

    def __init__(
        self,
        gateway: ModelGateway,
        resolver: ImageResolver,
        renderer: HtmlRenderer,
        store: LocalAssetStore,
        debug_dir: str | None = None,
    ) -> None:
        self.gateway = gateway
        self.resolver = resolver
        self.renderer = renderer
        self.store = store
        self.debug_dir = debug_dir

    async def generate(
        self,
        session: DesignSession,
        prompt: str,
        image_url: str | None = None,
        skip_concept: bool = False,
        artboard: Artboard | None = None,
    ) -> GenerationResult:
        """
        Generate the next design state of ``session`` from a user prompt.

        Generations on the same session are serialized, so each one edits the
        design committed by the one before it.

        Process flow:
        1. Build the model history from the transcript plus the new user turn
        2. Ask the model for a design concept (unless skipped)
        3. Ask the model for a structured design, editing the current one
        4. Resolve every image item against the session image pool
        5. Render the resolved design to HTML
        6. Commit transcript, concept and design to the session

        On failure nothing but an error entry in the transcript changes, so
        the user can retry from the last accepted design.
        """
        async with session.generation_lock:
            return await self._generate(session, prompt, image_url, skip_concept, artboard)

    async def _generate(
        self,
        session: DesignSession,
        prompt: str,
        image_url: str | None,
        skip_concept: bool,
        artboard: Artboard | None,
    ) -> GenerationResult:
        generation_id = uuid.uuid4().hex[:8]
        session_token = session_id_var.set(session.id)
        generation_token = generation_id_var.set(generation_id)
        debug = DebugSaver(self.debug_dir, session.id, generation_id) if self.debug_dir else None

        user_entry = ChatEntry(style="user", message=user_turn(prompt, image_url))
        history = [*session.transcript.as_history(), user_entry.message.model_copy(deep=True)]
        artboard_hint = artboard or session.artboard

        try:
            if debug:
                debug.save_prompt(prompt, image_url)

            concept = ""
            if not skip_concept:
                logger.info("Generating design concept")
                concept = await self.gateway.generate_text(build_concept_request(history))
                if debug:
                    debug.save_concept(concept)

            logger.info("Generating structured design")
            design = await self.gateway.generate_structured(
                build_design_request(
                    history,
                    concept,
                    session.document,
                    artboard_hint,
                    session.pool.entries(),
                )
            )
            if debug:
                debug.save_design(design)

            resolution = await self.resolver.resolve_design(design, session.pool)
            if debug:
                debug.save_resolution(resolution.document, resolution.images)

            html = self.renderer.render(resolution.document)
            if debug:
                debug.save_html(html)

        except DesignGenError as e:
            logger.error(
                "Design generation failed",
                extra={"error": type(e).__name__, "details": e.details},
            )
            session.transcript.add("error", Message.text("assistant", f"Generation failed: {e.message}"))
            if debug:
                debug.save_error(e)
            raise
        finally:
            session_id_var.reset(session_token)
            generation_id_var.reset(generation_token)

        session.transcript.entries.append(user_entry)
        if concept:
            session.transcript.add("assistant", Message.text("assistant", concept))
        session.concept = concept or session.concept
        session.document = resolution.document
        session.artboard = resolution.document.artboard
        session.generation_count += 1

        logger.info(
            "Design generation committed",
            extra={
                "session_id": session.id,
                "generation_id": generation_id,
                "items": len(resolution.document.items),
            },
        )
        return GenerationResult(
            generation_id=generation_id,
            concept=concept,
            design=design,
            resolved=resolution.document,
            html=html,
            images=resolution.images,
        )

    async def add_uploaded_image(
        self,
        session: DesignSession,
        image_data: bytes,
        filename: str,
        description: str | None = None,
    ) -> PoolImage:
        """Store an uploaded image and make it referenceable by id."""
        png = image_processor.to_png(image_data)
        url = await self.store.store(png, f"{Path(filename).stem}.png")
        image = PoolImage(
            id=f"upload_{uuid.uuid4().hex[:12]}",
            url=url,
            description=description or filename,
            source="uploaded",
        )
        session.pool.add(image)
        # The model sees the upload and its id on the next turn
        session.transcript.add(
            "image", user_turn(f"Uploaded image {image.id}: {image.description}", url)
        )
        return image

    def render(self, design: ResolvedDesign | DesignDocument) -> str:
        return self.renderer.render(design)
