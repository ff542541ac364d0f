from pydantic import BaseModel, Field

from designgen.models.conversation import ChatEntry
from designgen.models.schemas import Artboard, DesignDocument, ImagePool, ResolvedDesign


class CreateSessionRequest(BaseModel):
    artboard: Artboard | None = None


class GenerateRequest(BaseModel):
    prompt: str = Field(max_length=8000)
    image_url: str | None = None
    skip_concept: bool = False
    artboard: Artboard | None = None


class RenderRequest(BaseModel):
    document: ResolvedDesign | DesignDocument


class RenderResponse(BaseModel):
    html: str


class SessionSnapshot(BaseModel):
    id: str
    artboard: Artboard
    concept: str | None
    document: ResolvedDesign | None
    pool: ImagePool
    transcript: list[ChatEntry]
    generation_count: int
