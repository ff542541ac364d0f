import logging
from typing import Any, TypeVar

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from designgen.config import get_settings
from designgen.models.conversation import Conversation, ImageReferencePart, Message, TextPart
from designgen.models.exceptions import EmptyResponse, ModelGatewayError, SchemaViolation
from designgen.models.schemas import DesignDocument, format_validation_errors

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def to_openai_message(message: Message) -> dict[str, Any]:
    """Convert a message to the chat completions wire format."""
    if message.role != "user":
        # Only user messages may carry image parts
        text = "\n\n".join(part.text for part in message.content if isinstance(part, TextPart))
        return {"role": message.role, "content": text}

    content: list[dict[str, Any]] = []
    for part in message.content:
        match part:
            case TextPart(text=text):
                content.append({"type": "text", "text": text})
            case ImageReferencePart(url=url, detail=detail):
                content.append({"type": "image_url", "image_url": {"url": url, "detail": detail}})
    return {"role": "user", "content": content}


class ModelGateway:
    """Sends conversations to the language model. Performs no retries."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        max_completion_tokens: int | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self._api_key = settings.openai_api_key
        self.model = model or settings.openai_model
        self.max_completion_tokens = max_completion_tokens or settings.openai_max_completion_tokens

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def generate_text(self, conversation: Conversation) -> str:
        """Return the model's free-text reply to a conversation."""
        content = await self._complete(conversation)
        if not content or not content.strip():
            raise EmptyResponse(self.model)
        return content

    async def generate_structured(
        self, conversation: Conversation, schema: type[SchemaT] = DesignDocument
    ) -> SchemaT:
        """
        Return the model's reply validated against ``schema``.

        The JSON schema is sent as the response format; the reply is still
        validated locally in strict mode and any mismatch, including a value
        that would only fit after coercion, raises SchemaViolation.
        """
        response_format = {
            "type": "json_schema",
            "json_schema": {
                "name": schema.__name__,
                "schema": schema.model_json_schema(),
                "strict": False,
            },
        }
        content = await self._complete(conversation, response_format=response_format)
        if not content or not content.strip():
            raise EmptyResponse(self.model)

        try:
            return schema.model_validate_json(content, strict=True)
        except ValidationError as e:
            errors = format_validation_errors(e)
            logger.error(
                "Structured response failed validation",
                extra={"model": self.model, "errors": errors},
            )
            raise SchemaViolation(errors, self.model) from e

    async def _complete(self, conversation: Conversation, **kwargs: Any) -> str | None:
        messages = [to_openai_message(message) for message in conversation.messages]
        logger.info(
            "Sending conversation to model",
            extra={"model": self.model, "message_count": len(messages)},
        )
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_completion_tokens=self.max_completion_tokens,
                **kwargs,
            )
        except OpenAIError as e:
            raise ModelGatewayError(f"Model request failed: {e}", self.model) from e

        if not response.choices:
            return None
        return response.choices[0].message.content
