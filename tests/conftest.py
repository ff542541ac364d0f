"""Shared fixtures and fake collaborators for the designgen tests."""

import asyncio
from typing import Any

import pytest

from designgen.models.conversation import Conversation
from designgen.models.exceptions import GenerationError, RemovalError
from designgen.models.schemas import (
    Artboard,
    DesignDocument,
    ExistingImageItem,
    ImagePool,
    NewImageItem,
    PlacedItem,
    PoolImage,
    RectItem,
    TextItem,
)
from designgen.services.image_resolver import ImageResolver


class FakeImageGenerator:
    """Returns a fresh url per prompt; fails for prompts containing a marker."""

    def __init__(self, fail_marker: str = "FAIL", delays: dict[str, float] | None = None):
        self.fail_marker = fail_marker
        self.delays = delays or {}
        self.prompts: list[str] = []

    async def generate_image(self, prompt: str) -> str:
        self.prompts.append(prompt)
        call = len(self.prompts)
        for marker, delay in self.delays.items():
            if marker in prompt:
                await asyncio.sleep(delay)
        if self.fail_marker in prompt:
            raise GenerationError("generator exploded")
        return f"https://assets.test/generated_{call}.png"


class FakeBackgroundRemover:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.urls: list[str] = []

    async def remove_background(self, url: str) -> str:
        self.urls.append(url)
        if self.fail:
            raise RemovalError("remover exploded", {"url": url})
        return url.replace(".png", "_nobg.png")


class FakeGateway:
    """Model gateway returning queued replies and recording conversations."""

    def __init__(self, concept: str = "A bold concept", designs: list[Any] | None = None):
        self.concept = concept
        self.designs = list(designs or [])
        self.text_requests: list[Conversation] = []
        self.structured_requests: list[Conversation] = []

    async def generate_text(self, conversation: Conversation) -> str:
        self.text_requests.append(conversation)
        return self.concept

    async def generate_structured(self, conversation: Conversation, schema=DesignDocument):
        self.structured_requests.append(conversation)
        design = self.designs.pop(0)
        if isinstance(design, Exception):
            raise design
        return design


def new_image(description: str = "A red balloon", remove_background: bool = False) -> NewImageItem:
    return NewImageItem(
        description=description,
        colors=["#ff0000", "#ffffff"],
        objects=["balloon"],
        mood="playful",
        composition=["centered"],
        style="flat illustration",
        width=512,
        height=512,
        remove_background=remove_background,
    )


def text_item(text: str = "Hello", **overrides: Any) -> TextItem:
    fields = {
        "text": text,
        "font": "Playfair Display",
        "fontSize": 32,
        "fontWeight": 700,
        "fontColor": "#111111",
        "fontStyle": "normal",
        "align": "center",
        "fitText": False,
    }
    fields.update(overrides)
    return TextItem(**fields)


def rect_item(**overrides: Any) -> RectItem:
    fields = {"fill": "#336699", "stroke": "#000000", "strokeWidth": 2}
    fields.update(overrides)
    return RectItem(**fields)


def placed(item: Any, z_index: float = 0, **overrides: Any) -> PlacedItem:
    fields = {
        "x": 10,
        "y": 20,
        "width": 100,
        "height": 50,
        "rotation": 0,
        "zIndex": z_index,
        "opacity": 100,
        "item": item,
    }
    fields.update(overrides)
    return PlacedItem(**fields)


def make_document(*items: PlacedItem) -> DesignDocument:
    return DesignDocument(
        concept="Test concept",
        background="#ffffff",
        artboard=Artboard(width=700, height=1000),
        items=list(items),
    )


@pytest.fixture
def generator() -> FakeImageGenerator:
    return FakeImageGenerator()


@pytest.fixture
def remover() -> FakeBackgroundRemover:
    return FakeBackgroundRemover()


@pytest.fixture
def resolver(generator: FakeImageGenerator, remover: FakeBackgroundRemover) -> ImageResolver:
    return ImageResolver(generator=generator, remover=remover)


@pytest.fixture
def pool() -> ImagePool:
    return ImagePool()


@pytest.fixture
def seeded_pool() -> ImagePool:
    pool = ImagePool()
    pool.add(PoolImage(id="img_existing", url="https://assets.test/existing.png", description="A cat"))
    return pool


@pytest.fixture
def existing_document() -> DesignDocument:
    return make_document(placed(ExistingImageItem(id="img_existing"), z_index=1))
