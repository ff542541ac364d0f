import asyncio
import io
import logging

import httpx
from google import genai
from google.genai import errors, types
from PIL import Image

from designgen.models.exceptions import GenerationError, RemovalError, StoreError
from designgen.services.asset_store import LocalAssetStore
from designgen.services.image_processor import ImageProcessor, image_processor

logger = logging.getLogger(__name__)

RETRY_DELAY = 1.0  # seconds

SILHOUETTE_PROMPT = """Repaint this image as a mask of its main subject:
- paint the main subject completely solid black (saturation 0, lightness 0, alpha 100%);
- paint everything else, the whole background, pure white.

Keep the subject in exactly the same position, size and shape; it must be a perfect silhouette of the existing subject.
Do not add, move or invent any element."""


class GeminiService:
    """Image generation and editing with Gemini (Nano Banana)."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gemini-2.5-flash-image",
        max_retries: int = 3,
        retry_delay: float = RETRY_DELAY,
        client: genai.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def generate_image(self, prompt: str) -> bytes:
        """Generate a new image from a text prompt."""
        return await self._generate([prompt])

    async def paint_silhouette(self, image_data: bytes) -> bytes:
        """Repaint the main subject as black on white."""
        image = Image.open(io.BytesIO(image_data))
        return await self._generate([SILHOUETTE_PROMPT, image])

    async def _generate(self, contents: list) -> bytes:
        """Send an image request, retrying responses that carry no image."""
        last_error: ValueError | None = None

        for attempt in range(self.max_retries):
            try:
                response = await self.client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=types.GenerateContentConfig(
                        response_modalities=["IMAGE"],
                    ),
                )

                if not response.candidates:
                    raise ValueError("Gemini API returned no candidates")

                candidate = response.candidates[0]
                if candidate.content is None or not candidate.content.parts:
                    finish_reason = getattr(candidate, "finish_reason", "UNKNOWN")
                    raise ValueError(
                        f"Gemini API returned no content. Finish reason: {finish_reason}"
                    )

                for part in candidate.content.parts:
                    if part.inline_data is not None and part.inline_data.data:
                        return part.inline_data.data

                raise ValueError("No image returned from Gemini API")

            except ValueError as e:
                last_error = e
                logger.warning(
                    "Gemini image request failed",
                    extra={"attempt": attempt + 1, "error": str(e)},
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (attempt + 1))

        raise last_error or ValueError("Gemini API failed after all retries")


class GeminiImageGenerator:
    """Generates an image, stores it and returns its public url."""

    def __init__(
        self,
        gemini: GeminiService,
        store: LocalAssetStore,
        processor: ImageProcessor = image_processor,
    ) -> None:
        self.gemini = gemini
        self.store = store
        self.processor = processor

    async def generate_image(self, prompt: str) -> str:
        try:
            data = await self.gemini.generate_image(prompt)
            png = self.processor.to_png(data)
        except (ValueError, OSError, errors.APIError, httpx.HTTPError) as e:
            raise GenerationError(f"Image generation failed: {e}", {"prompt": prompt}) from e

        # StoreError propagates as is
        return await self.store.store(png, "generated.png")


class GeminiBackgroundRemover:
    """Cuts the main subject out of a stored image."""

    def __init__(
        self,
        gemini: GeminiService,
        store: LocalAssetStore,
        processor: ImageProcessor = image_processor,
    ) -> None:
        self.gemini = gemini
        self.store = store
        self.processor = processor

    async def remove_background(self, url: str) -> str:
        try:
            original = await self.store.fetch(url)
            silhouette = await self.gemini.paint_silhouette(original)
            cut_out = self.processor.cut_out_subject(original, silhouette)
            return await self.store.store(cut_out, "no_background.png")
        except (ValueError, OSError, errors.APIError, httpx.HTTPError, StoreError) as e:
            raise RemovalError(f"Background removal failed: {e}", {"url": url}) from e
