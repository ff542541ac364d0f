"""Exception types raised by the design generation pipeline.

Every error carries a human readable message and a ``details`` dict so the
API layer can report which request, item or image id was involved.
"""

from typing import Any


class DesignGenError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ModelGatewayError(DesignGenError):
    """Raised when the language model call itself fails."""

    def __init__(self, message: str, model: str | None = None):
        self.model = model
        super().__init__(message, {"model": model} if model else None)


class SchemaViolation(ModelGatewayError):
    """Raised when the structured model output does not match the schema."""

    def __init__(self, errors: list[str], model: str | None = None):
        self.errors = errors
        super().__init__("Model output does not match the design schema", model)
        self.details["errors"] = errors


class EmptyResponse(ModelGatewayError):
    """Raised when the model returns no usable content."""

    def __init__(self, model: str | None = None):
        super().__init__("Model returned an empty response", model)


class GenerationError(DesignGenError):
    """Raised by an image generator when it cannot produce an image."""


class RemovalError(DesignGenError):
    """Raised by a background remover. Recovered by the image resolver."""


class StoreError(DesignGenError):
    """Raised when an asset cannot be persisted or read back."""


class ImageGenerationFailed(DesignGenError):
    """A required new image could not be resolved."""

    def __init__(self, item_index: int, description: str, reason: str):
        self.item_index = item_index
        self.description = description
        self.reason = reason
        super().__init__(
            f"Image generation failed for item {item_index}: {reason}",
            {"item_index": item_index, "description": description, "reason": reason},
        )


class UnknownImageReference(DesignGenError):
    """An existing_image item references an id missing from the image pool."""

    def __init__(self, image_id: str, item_index: int | None = None):
        self.image_id = image_id
        self.item_index = item_index
        details: dict[str, Any] = {"image_id": image_id}
        if item_index is not None:
            details["item_index"] = item_index
        super().__init__(f"Unknown image reference: {image_id}", details)


class SessionNotFound(DesignGenError):
    """Raised when a design session id is not registered."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}", {"session_id": session_id})
