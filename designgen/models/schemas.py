import json
from typing import Annotated, Literal, Sequence, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError

from designgen.models.exceptions import SchemaViolation

HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}){1,2}$"

# Font family names as listed by Google Fonts
FONT_NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9 \-]*$"


class Artboard(BaseModel):
    """Canvas dimensions in pixels."""

    width: float = Field(gt=0, description="The width of the artboard in pixels")
    height: float = Field(gt=0, description="The height of the artboard in pixels")

    def size_hint(self) -> str:
        return f"{self.width:g}x{self.height:g}"


class NewImageItem(BaseModel):
    """Image placeholder that still has to be generated."""

    type: Literal["new_image"] = "new_image"
    description: str = Field(
        description="An extremely detailed description of the image, used as the generation prompt"
    )
    colors: list[str] = Field(default_factory=list, description="The hex values of colors in the image")
    objects: list[str] = Field(default_factory=list, description="The objects in the image")
    mood: str = Field("", description="The mood of the image")
    composition: list[str] = Field(default_factory=list, description="The composition of the image")
    style: str = Field("", description="The style of the image")
    height: float = Field(gt=0, description="The height of the image to generate")
    width: float = Field(gt=0, description="The width of the image to generate")
    remove_background: bool = Field(
        False,
        description="Whether to remove the background of the image in post processing after generation",
    )


class ExistingImageItem(BaseModel):
    """Reference to an image already in the session image pool."""

    type: Literal["existing_image"] = "existing_image"
    id: str = Field(description="The ID of an existing image, MUST be exactly as seen before")


class EnrichedImageItem(BaseModel):
    """Resolved image with a concrete asset url."""

    type: Literal["enriched_image"] = "enriched_image"
    id: str
    url: str | None = None
    description: str | None = None


class TextItem(BaseModel):
    type: Literal["text"] = "text"
    text: str = Field(description="The text to display")
    font: str = Field(
        "Inter", pattern=FONT_NAME_PATTERN, description="The Google Fonts family to use"
    )
    fontSize: float = Field(16, gt=0, description="The font size to use. Ignored if fitText is true")
    fontWeight: float = Field(400, description="The font weight to use")
    fontColor: str = Field(
        "#000000", pattern=HEX_COLOR_PATTERN, description="The font color to use, in hex format"
    )
    fontStyle: Literal["normal", "italic", "oblique"] = Field(
        "normal", description="The font style to use"
    )
    width: float | None = Field(None, description="The width of the text box")
    align: Literal["left", "center", "right"] = Field(
        "left", description="The alignment of the text in the textbox"
    )
    wrap: bool = Field(True, description="Whether the text should wrap")
    bold: bool = Field(False, description="Whether the text should be bold")
    italic: bool = Field(False, description="Whether the text should be italic")
    underline: bool = Field(False, description="Whether the text should be underlined")
    fitText: bool = Field(
        True, description="Whether the text should automatically resize to fit the textbox"
    )


class GradientStop(BaseModel):
    offset: float = Field(ge=0, le=100, description="Position along the gradient in percent")
    color: str = Field(pattern=HEX_COLOR_PATTERN, description="Stop color in hex format")


class Gradient(BaseModel):
    type: Literal["linear", "radial"] = "linear"
    angle: float = Field(180, description="Gradient angle in degrees (linear only)")
    stops: list[GradientStop] = Field(min_length=2, description="Color stops in order")


class RectItem(BaseModel):
    type: Literal["rectangle"] = "rectangle"
    fill: str = Field(
        pattern=HEX_COLOR_PATTERN, description="The fill color of the item, in hex format"
    )
    stroke: str = Field(
        "#000000", pattern=HEX_COLOR_PATTERN, description="The stroke color of the item, in hex format"
    )
    strokeWidth: float = Field(0, ge=0, description="The stroke width of the item")
    gradient: Gradient | None = Field(None, description="Optional gradient drawn instead of the fill")
    cornerRadius: float | None = Field(None, ge=0, description="Optional corner radius in pixels")


DesignItem = Annotated[
    Union[NewImageItem, ExistingImageItem, EnrichedImageItem, TextItem, RectItem],
    Field(discriminator="type"),
]

ResolvedItem = Annotated[
    Union[EnrichedImageItem, TextItem, RectItem],
    Field(discriminator="type"),
]


class _Placement(BaseModel):
    x: float = Field(description="The x coordinate of the top left of the bounding box of the item")
    y: float = Field(description="The y coordinate of the top left of the bounding box of the item")
    width: float = Field(gt=0, description="The width of the bounding box of the item")
    height: float = Field(gt=0, description="The height of the bounding box of the item")
    rotation: float = Field(0, description="The rotation of the item in degrees")
    zIndex: float = Field(0, description="The z index of the item")
    opacity: float = Field(
        100, ge=0, le=100, description="The opacity of the item from 0 to 100 percent"
    )


class PlacedItem(_Placement):
    item: DesignItem


class ResolvedPlacedItem(_Placement):
    item: ResolvedItem


class _DesignBase(BaseModel):
    concept: str = Field("", description="A concept for the design")
    background: str = Field(
        pattern=HEX_COLOR_PATTERN,
        description="The background color of the design, a single hex value such as #ffffff",
    )
    artboard: Artboard

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(indent=indent)


class DesignDocument(_DesignBase):
    """Layout of one design state as produced by the language model."""

    items: list[PlacedItem] = Field(default_factory=list)


class ResolvedDesign(_DesignBase):
    """Design document whose image items are all resolved to urls."""

    items: list[ResolvedPlacedItem] = Field(default_factory=list)


class PoolImage(BaseModel):
    id: str
    url: str
    description: str | None = None
    source: Literal["generated", "uploaded"] = "generated"


class ImagePool(BaseModel):
    """Session scoped registry of images that designs may reference by id."""

    images: dict[str, PoolImage] = Field(default_factory=dict)

    def add(self, image: PoolImage) -> PoolImage:
        """Insert an image. Re-adding the same id with the same url is a no-op."""
        current = self.images.get(image.id)
        if current is not None:
            if current.url != image.url:
                raise ValueError(f"Image id {image.id} is already bound to another url")
            return current
        self.images[image.id] = image
        return image

    def get(self, image_id: str) -> PoolImage | None:
        return self.images.get(image_id)

    def remove(self, image_id: str) -> PoolImage | None:
        return self.images.pop(image_id, None)

    def ids(self) -> list[str]:
        return list(self.images)

    def __contains__(self, image_id: object) -> bool:
        return image_id in self.images

    def entries(self) -> list[PoolImage]:
        return list(self.images.values())

    def __len__(self) -> int:
        return len(self.images)


PlacementT = TypeVar("PlacementT", bound=_Placement)


def paint_order(items: Sequence[PlacementT]) -> list[PlacementT]:
    """Return items in ascending zIndex, keeping sequence order for ties."""
    return sorted(items, key=lambda placed: placed.zIndex)


def format_validation_errors(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
        for err in error.errors()
    ]


def parse_design(data: str | bytes | dict) -> DesignDocument:
    """
    Parse and validate a design document, raising SchemaViolation on any error.

    Validation is strict: strings are never coerced into numbers or booleans.
    """
    if not isinstance(data, (str, bytes)):
        data = json.dumps(data)
    try:
        return DesignDocument.model_validate_json(data, strict=True)
    except ValidationError as e:
        raise SchemaViolation(format_validation_errors(e)) from e
