import asyncio
import uuid

from pydantic import BaseModel, Field, PrivateAttr

from designgen.models.conversation import Transcript
from designgen.models.exceptions import SessionNotFound
from designgen.models.schemas import Artboard, ImagePool, ResolvedDesign


class DesignSession(BaseModel):
    """Everything one user's iterative design work depends on."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    artboard: Artboard
    transcript: Transcript = Field(default_factory=Transcript)
    pool: ImagePool = Field(default_factory=ImagePool)
    concept: str | None = None
    document: ResolvedDesign | None = None
    generation_count: int = 0

    # Generations on one session run one at a time
    _generation_lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    @property
    def generation_lock(self) -> asyncio.Lock:
        return self._generation_lock


class SessionStore:
    """In-memory registry of design sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, DesignSession] = {}

    def create(self, artboard: Artboard) -> DesignSession:
        session = DesignSession(artboard=artboard)
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> DesignSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def delete(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFound(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
