"""Tests for the design document schema."""

import json

import pytest
from pydantic import ValidationError

from conftest import make_document, new_image, placed, rect_item, text_item
from designgen.models.exceptions import SchemaViolation
from designgen.models.schemas import (
    DesignDocument,
    EnrichedImageItem,
    ExistingImageItem,
    Gradient,
    ImagePool,
    NewImageItem,
    PoolImage,
    RectItem,
    ResolvedDesign,
    TextItem,
    paint_order,
    parse_design,
)


def valid_payload() -> dict:
    return {
        "concept": "Summer sale poster",
        "background": "#fafafa",
        "artboard": {"width": 1080, "height": 1350},
        "items": [
            {
                "x": -20,
                "y": 0,
                "width": 1120,
                "height": 700,
                "rotation": 0,
                "zIndex": 0,
                "opacity": 80,
                "item": {
                    "type": "new_image",
                    "description": "A beach at sunset",
                    "colors": ["#ff9900"],
                    "objects": ["sun", "sea"],
                    "mood": "warm",
                    "composition": ["horizon in lower third"],
                    "style": "photographic",
                    "width": 1024,
                    "height": 640,
                    "remove_background": False,
                },
            },
            {
                "x": 40,
                "y": 900,
                "width": 1000,
                "height": 200,
                "rotation": -5,
                "zIndex": 2,
                "opacity": 100,
                "item": {
                    "type": "text",
                    "text": "SUMMER SALE",
                    "font": "Anton",
                    "fontSize": 120,
                    "fontWeight": 800,
                    "fontColor": "#222222",
                    "fontStyle": "normal",
                    "width": 1000,
                    "align": "center",
                    "wrap": False,
                    "bold": True,
                    "italic": False,
                    "underline": False,
                    "fitText": True,
                },
            },
            {
                "x": 0,
                "y": 1200,
                "width": 1080,
                "height": 150,
                "rotation": 0,
                "zIndex": 1,
                "opacity": 100,
                "item": {"type": "existing_image", "id": "img_abc"},
            },
            {
                "x": 0,
                "y": 0,
                "width": 1080,
                "height": 40,
                "rotation": 0,
                "zIndex": 3,
                "opacity": 100,
                "item": {
                    "type": "rectangle",
                    "fill": "#000000",
                    "stroke": "#ffffff",
                    "strokeWidth": 1,
                    "gradient": {
                        "type": "linear",
                        "angle": 90,
                        "stops": [
                            {"offset": 0, "color": "#000000"},
                            {"offset": 100, "color": "#333333"},
                        ],
                    },
                    "cornerRadius": 8,
                },
            },
        ],
    }


class TestParseDesign:
    def test_parses_every_item_variant(self):
        document = parse_design(valid_payload())

        kinds = [type(placed_item.item) for placed_item in document.items]
        assert kinds == [NewImageItem, TextItem, ExistingImageItem, RectItem]
        assert document.items[0].x == -20
        assert isinstance(document.items[3].item.gradient, Gradient)

    def test_round_trip_preserves_document(self):
        document = parse_design(valid_payload())

        again = parse_design(document.to_json())

        assert again == document
        assert [p.item.type for p in again.items] == [
            "new_image",
            "text",
            "existing_image",
            "rectangle",
        ]

    def test_serialized_items_carry_type_discriminator(self):
        document = make_document(placed(text_item()), placed(rect_item()))

        data = json.loads(document.to_json())

        assert [entry["item"]["type"] for entry in data["items"]] == ["text", "rectangle"]

    def test_accepts_json_string(self):
        document = parse_design(json.dumps(valid_payload()))
        assert document.artboard.width == 1080

    def test_empty_items_are_allowed(self):
        payload = valid_payload()
        payload["items"] = []
        assert parse_design(payload).items == []

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda p: p.pop("artboard"),
            lambda p: p["artboard"].update(width=0),
            lambda p: p.update(background="blue"),
            lambda p: p["items"][0].update(opacity=101),
            lambda p: p["items"][0].update(width=0),
            lambda p: p["items"][1]["item"].update(align="justify"),
            lambda p: p["items"][2]["item"].update(type="mystery"),
            lambda p: p["items"][2]["item"].pop("id"),
            lambda p: p["items"][0].update(x="12"),
            lambda p: p["items"][1]["item"].update(fitText="yes"),
            lambda p: p["items"][3]["item"].update(fill="red; background-image: url(x)"),
            lambda p: p["items"][3]["item"]["gradient"]["stops"][0].update(color="#000; top: 0"),
            lambda p: p["items"][1]["item"].update(fontColor="red"),
            lambda p: p["items"][1]["item"].update(font="Anton'; color: red"),
            lambda p: p["items"][1]["item"].update(fontStyle="normal; color: red"),
        ],
        ids=[
            "missing-artboard",
            "zero-width-artboard",
            "non-hex-background",
            "opacity-above-100",
            "zero-width-item",
            "unknown-align",
            "unknown-item-type",
            "existing-image-without-id",
            "string-number",
            "string-boolean",
            "css-in-fill",
            "css-in-gradient-stop",
            "named-font-color",
            "quote-in-font-name",
            "unknown-font-style",
        ],
    )
    def test_rejects_malformed_documents(self, mutate):
        payload = valid_payload()
        mutate(payload)

        with pytest.raises(SchemaViolation) as exc_info:
            parse_design(payload)

        assert exc_info.value.errors

    def test_invalid_json_is_a_schema_violation(self):
        with pytest.raises(SchemaViolation, match="schema"):
            parse_design("{not json")

    def test_type_discriminator_is_required_for_dispatch(self):
        payload = valid_payload()
        payload["items"][1]["item"].pop("type")

        with pytest.raises(SchemaViolation):
            parse_design(payload)


class TestResolvedDesign:
    def test_rejects_unresolved_image_items(self):
        payload = valid_payload()
        with pytest.raises(ValidationError):
            ResolvedDesign.model_validate(payload)

    def test_accepts_enriched_images(self):
        resolved = ResolvedDesign(
            background="#000",
            artboard={"width": 10, "height": 10},
            items=[
                {
                    "x": 0,
                    "y": 0,
                    "width": 5,
                    "height": 5,
                    "item": {"type": "enriched_image", "id": "img_1", "url": None},
                }
            ],
        )
        assert isinstance(resolved.items[0].item, EnrichedImageItem)
        assert resolved.items[0].opacity == 100


class TestPaintOrder:
    def test_sorts_by_z_index(self):
        items = [placed(text_item("top"), 5), placed(text_item("bottom"), -1), placed(text_item("mid"), 2)]

        assert [p.item.text for p in paint_order(items)] == ["bottom", "mid", "top"]

    def test_ties_keep_sequence_order(self):
        items = [
            placed(text_item("a"), 1),
            placed(text_item("b"), 0),
            placed(text_item("c"), 1),
            placed(text_item("d"), 1),
        ]

        assert [p.item.text for p in paint_order(items)] == ["b", "a", "c", "d"]


class TestImagePool:
    def test_add_and_get(self):
        pool = ImagePool()
        pool.add(PoolImage(id="img_1", url="https://a/1.png", description="one"))

        assert "img_1" in pool
        assert pool.get("img_1").url == "https://a/1.png"
        assert len(pool) == 1

    def test_re_adding_same_image_is_a_no_op(self):
        pool = ImagePool()
        image = PoolImage(id="img_1", url="https://a/1.png")
        pool.add(image)
        pool.add(image.model_copy())

        assert len(pool) == 1

    def test_rebinding_an_id_is_rejected(self):
        pool = ImagePool()
        pool.add(PoolImage(id="img_1", url="https://a/1.png"))

        with pytest.raises(ValueError):
            pool.add(PoolImage(id="img_1", url="https://a/2.png"))

    def test_remove_is_explicit(self):
        pool = ImagePool()
        pool.add(PoolImage(id="img_1", url="https://a/1.png"))

        assert pool.remove("img_1").id == "img_1"
        assert pool.remove("img_1") is None
        assert pool.ids() == []

    def test_round_trips_through_json(self):
        pool = ImagePool()
        pool.add(PoolImage(id="img_1", url="https://a/1.png", description="one"))
        pool.add(PoolImage(id="upload_1", url="https://a/u.png", source="uploaded"))

        again = ImagePool.model_validate_json(pool.model_dump_json())

        assert again == pool
        assert again.get("upload_1").source == "uploaded"


def test_new_image_item_defaults():
    item = new_image()
    assert item.type == "new_image"
    assert DesignDocument.model_json_schema()["title"] == "DesignDocument"
