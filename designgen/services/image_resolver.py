"""Resolution of image placeholders into stored images.

Every ``new_image`` item is generated (and optionally cut out of its
background), every ``existing_image`` item, and every ``enriched_image``
item echoed back from a previous design, is looked up in the session image
pool by id. All image items resolve concurrently; the first failure in item order
fails the whole document, after every sibling has finished.
"""

import asyncio
import logging
import uuid
from typing import Any, Coroutine, Literal, Protocol, assert_never

from pydantic import BaseModel

from designgen.models.exceptions import (
    GenerationError,
    ImageGenerationFailed,
    RemovalError,
    StoreError,
    UnknownImageReference,
)
from designgen.models.schemas import (
    DesignDocument,
    EnrichedImageItem,
    ExistingImageItem,
    ImagePool,
    NewImageItem,
    PoolImage,
    RectItem,
    ResolvedDesign,
    ResolvedPlacedItem,
    TextItem,
)

logger = logging.getLogger(__name__)


class ImageGenerator(Protocol):
    async def generate_image(self, prompt: str) -> str:
        """Return the url of an image generated from ``prompt``."""
        ...


class BackgroundRemover(Protocol):
    async def remove_background(self, url: str) -> str:
        """Return the url of a copy of ``url`` without its background."""
        ...


class ImageResolution(BaseModel):
    """How one image item of a document was resolved."""

    item_index: int
    image_id: str
    origin: Literal["generated", "existing"]
    background_removal: Literal["not_requested", "applied", "fell_back"] = "not_requested"
    generated_url: str | None = None


class ResolutionResult(BaseModel):
    document: ResolvedDesign
    images: list[ImageResolution]


def build_image_prompt(item: NewImageItem) -> str:
    """Generation prompt for a placeholder. Field order is fixed."""
    parts = [f"A {item.width:g}x{item.height:g} image.", f"{item.description.rstrip('.')}."]
    if item.colors:
        parts.append(f"Colors: {', '.join(item.colors)}.")
    if item.objects:
        parts.append(f"Objects: {', '.join(item.objects)}.")
    if item.mood:
        parts.append(f"Mood: {item.mood}.")
    if item.composition:
        parts.append(f"Composition: {', '.join(item.composition)}.")
    if item.style:
        parts.append(f"Style: {item.style}.")
    return " ".join(parts)


def new_image_id(pool: ImagePool) -> str:
    while True:
        image_id = f"img_{uuid.uuid4().hex[:12]}"
        if image_id not in pool:
            return image_id


class ImageResolver:
    def __init__(self, generator: ImageGenerator, remover: BackgroundRemover) -> None:
        self.generator = generator
        self.remover = remover

    async def resolve_design(self, document: DesignDocument, pool: ImagePool) -> ResolutionResult:
        """
        Resolve every image item of ``document`` against ``pool``.

        Newly generated images are added to the pool as they complete. The
        input document is never modified.

        Raises:
            ImageGenerationFailed: a new image could not be generated or stored.
            UnknownImageReference: an existing_image or enriched_image id is
                not in the pool.
        """
        pending: dict[int, Coroutine[Any, Any, tuple[EnrichedImageItem, ImageResolution]]] = {}
        for index, placed in enumerate(document.items):
            match placed.item:
                case NewImageItem() as item:
                    pending[index] = self._resolve_new(index, item, pool)
                case ExistingImageItem(id=image_id) | EnrichedImageItem(id=image_id):
                    # Echoed enriched items are only trusted for their id
                    pending[index] = self._resolve_existing(index, image_id, pool)
                case TextItem() | RectItem():
                    pass
                case _ as unreachable:
                    assert_never(unreachable)

        logger.info(
            "Resolving design images",
            extra={"image_items": len(pending), "total_items": len(document.items)},
        )

        outcomes = await asyncio.gather(*pending.values(), return_exceptions=True)
        resolved: dict[int, tuple[EnrichedImageItem, ImageResolution]] = {}
        for index, outcome in zip(pending, outcomes):
            if isinstance(outcome, BaseException):
                raise outcome
            resolved[index] = outcome

        items: list[ResolvedPlacedItem] = []
        for index, placed in enumerate(document.items):
            placement = placed.model_dump(exclude={"item"})
            if index in resolved:
                item = resolved[index][0]
            else:
                item = placed.item.model_copy(deep=True)
            items.append(ResolvedPlacedItem(**placement, item=item))

        resolved_document = ResolvedDesign(
            concept=document.concept,
            background=document.background,
            artboard=document.artboard.model_copy(),
            items=items,
        )
        return ResolutionResult(
            document=resolved_document,
            images=[resolution for _, resolution in resolved.values()],
        )

    async def _resolve_new(
        self, index: int, item: NewImageItem, pool: ImagePool
    ) -> tuple[EnrichedImageItem, ImageResolution]:
        prompt = build_image_prompt(item)
        try:
            generated_url = await self.generator.generate_image(prompt)
        except (GenerationError, StoreError) as e:
            logger.error(
                "Image generation failed",
                extra={"item_index": index, "error": e.message},
            )
            raise ImageGenerationFailed(index, item.description, e.message) from e

        url = generated_url
        background_removal = "not_requested"
        if item.remove_background:
            try:
                url = await self.remover.remove_background(generated_url)
                background_removal = "applied"
            except RemovalError as e:
                logger.warning(
                    "Background removal failed, keeping the generated image",
                    extra={"item_index": index, "error": e.message},
                )
                background_removal = "fell_back"

        image_id = new_image_id(pool)
        pool.add(PoolImage(id=image_id, url=url, description=item.description, source="generated"))

        enriched = EnrichedImageItem(id=image_id, url=url, description=item.description)
        resolution = ImageResolution(
            item_index=index,
            image_id=image_id,
            origin="generated",
            background_removal=background_removal,
            generated_url=generated_url,
        )
        return enriched, resolution

    async def _resolve_existing(
        self, index: int, image_id: str, pool: ImagePool
    ) -> tuple[EnrichedImageItem, ImageResolution]:
        image = pool.get(image_id)
        if image is None:
            raise UnknownImageReference(image_id, index)

        enriched = EnrichedImageItem(id=image.id, url=image.url, description=image.description)
        return enriched, ImageResolution(item_index=index, image_id=image.id, origin="existing")

