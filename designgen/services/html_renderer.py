import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote_plus

from jinja2 import Environment, FileSystemLoader, select_autoescape

from designgen.models.schemas import (
    DesignDocument,
    EnrichedImageItem,
    Gradient,
    RectItem,
    ResolvedDesign,
    TextItem,
    paint_order,
)

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

PLACEHOLDER_LABEL = "Image loading..."

JUSTIFY = {"left": "flex-start", "center": "center", "right": "flex-end"}


def css_number(value: float) -> str:
    """Format a number for CSS without exponents or trailing zeros."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.4f}".rstrip("0").rstrip(".")


def _gradient_css(gradient: Gradient) -> str:
    stops = ", ".join(f"{stop.color} {css_number(stop.offset)}%" for stop in gradient.stops)
    if gradient.type == "radial":
        return f"radial-gradient(circle, {stops})"
    return f"linear-gradient({css_number(gradient.angle)}deg, {stops})"


def _text_style(text: TextItem) -> str:
    style = f" font-family: '{text.font}'; color: {text.fontColor}; text-align: {text.align};"

    if text.fitText:
        # Size is left to the fit-to-box script on the page
        style += f" justify-content: {JUSTIFY[text.align]};"
    else:
        style += f" font-size: {css_number(text.fontSize)}px;"

    if text.fontWeight:
        style += f" font-weight: {css_number(text.fontWeight)};"
    if text.fontStyle:
        style += f" font-style: {text.fontStyle};"
    if text.bold:
        style += " font-weight: bold;"
    if text.italic:
        style += " font-style: italic;"
    if text.underline:
        style += " text-decoration: underline;"
    if not text.wrap:
        style += " white-space: nowrap; overflow: hidden;"
    return style


def _rect_style(rect: RectItem) -> str:
    if rect.gradient is not None:
        style = f" background: {_gradient_css(rect.gradient)};"
    else:
        style = f" background-color: {rect.fill};"
    if rect.strokeWidth > 0:
        style += f" border: {css_number(rect.strokeWidth)}px solid {rect.stroke};"
    if rect.cornerRadius:
        style += f" border-radius: {css_number(rect.cornerRadius)}px;"
    return style


class HtmlRenderer:
    """Renders a design document to an HTML fragment with inline styles."""

    def __init__(self, templates_dir: Path = TEMPLATES_DIR) -> None:
        self.environment = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(default=True, default_for_string=True),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, design: ResolvedDesign | DesignDocument) -> str:
        """
        Render items in paint order.

        Items that cannot be displayed (unresolved image placeholders) are
        skipped with a warning.
        """
        elements: list[dict[str, Any]] = []
        fonts: list[str] = []

        for position, placed in enumerate(paint_order(design.items)):
            box = (
                f"position: absolute; left: {css_number(placed.x)}px; top: {css_number(placed.y)}px;"
                f" width: {css_number(placed.width)}px; height: {css_number(placed.height)}px;"
                f" z-index: {position}; transform: rotate({css_number(placed.rotation)}deg);"
                f" opacity: {css_number(placed.opacity / 100)};"
            )

            match placed.item:
                case EnrichedImageItem(url=url, description=description) if url:
                    elements.append(
                        {"kind": "image", "url": url, "description": description or "", "style": box}
                    )
                case EnrichedImageItem(description=description):
                    elements.append(
                        {
                            "kind": "placeholder",
                            "description": description or PLACEHOLDER_LABEL,
                            "style": box,
                        }
                    )
                case TextItem() as text:
                    if text.font not in fonts:
                        fonts.append(text.font)
                    elements.append(
                        {
                            "kind": "text",
                            "id": f"text-{position}",
                            "text": text.text,
                            "fit": text.fitText,
                            "style": box + _text_style(text),
                        }
                    )
                case RectItem() as rect:
                    elements.append({"kind": "rectangle", "style": box + _rect_style(rect)})
                case other:
                    logger.warning(
                        "Skipping item that cannot be rendered",
                        extra={"item_type": getattr(other, "type", type(other).__name__)},
                    )

        container_style = (
            f"position: relative; width: {css_number(design.artboard.width)}px;"
            f" height: {css_number(design.artboard.height)}px;"
            f" background-color: {design.background}; overflow: hidden;"
        )
        font_query = "&".join(f"family={quote_plus(font)}" for font in fonts)

        template = self.environment.get_template("design.html.j2")
        return template.render(
            container_style=container_style,
            elements=elements,
            font_query=font_query,
        )
