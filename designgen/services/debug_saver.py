import json
import re
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class DebugSaver:
    """Saves the intermediate states of one generation for debugging."""

    def __init__(self, root: str | Path, session_id: str, generation_id: str) -> None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        safe_session = re.sub(r"[^\w\-.]", "_", session_id)
        self.generation_dir = Path(root) / safe_session / f"{timestamp}_{generation_id}"
        self.generation_dir.mkdir(parents=True, exist_ok=True)

    def save_prompt(self, prompt: str, image_url: str | None) -> None:
        self._save_json({"prompt": prompt, "image_url": image_url}, "00_prompt.json")

    def save_concept(self, concept: str) -> None:
        self._save_text(concept, "01_concept.md")

    def save_design(self, design: BaseModel) -> None:
        """Save the design exactly as returned by the model."""
        self._save_text(design.model_dump_json(indent=2), "02_design.json")

    def save_resolution(self, resolved: BaseModel, images: list[BaseModel]) -> None:
        self._save_text(resolved.model_dump_json(indent=2), "03_resolved_design.json")
        self._save_json([image.model_dump() for image in images], "03_image_resolutions.json")

    def save_html(self, html: str) -> None:
        self._save_text(html, "04_design.html")

    def save_error(self, error: Exception) -> None:
        self._save_json(
            {
                "error": type(error).__name__,
                "message": str(error),
                "details": getattr(error, "details", {}),
            },
            "error.json",
        )

    def _save_text(self, text: str, filename: str) -> None:
        (self.generation_dir / filename).write_text(text, encoding="utf-8")

    def _save_json(self, data: dict | list, filename: str) -> None:
        with open(self.generation_dir / filename, "w") as f:
            json.dump(data, f, indent=2, default=str)
