import json
import logging

import pytest

from designgen.logging_config import StructuredFormatter, generation_id_var, session_id_var
from designgen.models.conversation import Message
from designgen.models.exceptions import SessionNotFound
from designgen.models.schemas import Artboard
from designgen.services.session_store import SessionStore


class TestSessionStore:
    def test_create_and_get(self):
        store = SessionStore()

        session = store.create(Artboard(width=700, height=1000))

        assert store.get(session.id) is session
        assert session.document is None
        assert len(session.pool) == 0
        assert session.transcript.entries == []

    def test_sessions_are_isolated(self):
        store = SessionStore()
        first = store.create(Artboard(width=700, height=1000))
        second = store.create(Artboard(width=700, height=1000))

        first.transcript.add("error", Message.text("assistant", "Generation failed"))

        assert first.id != second.id
        assert second.transcript.entries == []
        assert first.pool is not second.pool

    def test_unknown_session(self):
        with pytest.raises(SessionNotFound) as exc_info:
            SessionStore().get("missing")

        assert exc_info.value.details == {"session_id": "missing"}

    def test_delete(self):
        store = SessionStore()
        session = store.create(Artboard(width=10, height=10))

        store.delete(session.id)

        assert len(store) == 0
        with pytest.raises(SessionNotFound):
            store.delete(session.id)


class TestStructuredFormatter:
    def format(self, **extra) -> dict:
        record = logging.LogRecord("designgen.test", logging.INFO, __file__, 1, "Hello", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return json.loads(StructuredFormatter("%(message)s").format(record))

    def test_standard_fields(self):
        data = self.format(item_index=2)

        assert data["message"] == "Hello"
        assert data["level"] == "INFO"
        assert data["logger"] == "designgen.test"
        assert data["item_index"] == 2
        assert "timestamp" in data
        assert "session_id" not in data

    def test_includes_generation_context(self):
        session_token = session_id_var.set("sess-1")
        generation_token = generation_id_var.set("gen-1")
        try:
            data = self.format()
        finally:
            session_id_var.reset(session_token)
            generation_id_var.reset(generation_token)

        assert data["session_id"] == "sess-1"
        assert data["generation_id"] == "gen-1"
