"""Unit tests for prompt composition.

Covers reference ordering for every request kind, the master/dependent scene
branches, optional mood board handling and determinism.
"""

import pytest

from lemstudio.core.models import (
    CameraAngle,
    ProductItem,
    RenderParameters,
    RoomType,
    StagingParameters,
    ViewType,
)
from lemstudio.core.prompt_composer import (
    MASTER_SHOT_CAPTION,
    MOOD_BOARD_CAPTION,
    SCENE_MOOD_BOARD_CAPTION,
    ReferenceRole,
    compose_edit,
    compose_product_render,
    compose_scene,
    describe_angle,
)


@pytest.fixture
def products():
    return [
        ProductItem(source="sofa.jpg", id="p1"),
        ProductItem(source="lamp.jpg", id="p2"),
    ]


class TestDescribeAngle:
    def test_known_angle(self):
        assert describe_angle(CameraAngle.WIDE).startswith("Panoramic wide shot")

    def test_every_angle_has_description(self):
        for angle in CameraAngle:
            assert describe_angle(angle) != angle.value

    def test_unknown_angle_falls_back_to_label(self):
        assert describe_angle("Dutch Tilt") == "Dutch Tilt"


class TestComposeProductRender:
    def test_without_mood_board(self):
        product = ProductItem(source="sofa.jpg", view_type=ViewType.SIDE)
        composed = compose_product_render(product, RenderParameters())

        assert composed.sources == ["sofa.jpg"]
        assert composed.references[0].role is ReferenceRole.PRODUCT
        assert composed.instruction.startswith("Professional CGI Product Rendering.")
        assert "Product: side view." in composed.instruction
        assert "MOOD BOARD" not in composed.instruction

    def test_mood_board_follows_product(self):
        product = ProductItem(source="sofa.jpg")
        composed = compose_product_render(product, RenderParameters(), "mood.jpg")

        assert composed.sources == ["sofa.jpg", "mood.jpg"]
        mood = composed.references[1]
        assert mood.role is ReferenceRole.MOOD_BOARD
        assert mood.caption == MOOD_BOARD_CAPTION
        assert "MOOD BOARD" in composed.instruction

    def test_parameters_in_instruction(self):
        params = RenderParameters(room_type=RoomType.KITCHEN, color_palette="Sage & Oak")
        composed = compose_product_render(ProductItem(source="x.jpg"), params)
        assert "Interior Kitchen" in composed.instruction
        assert "Sage & Oak" in composed.instruction

    def test_external_items_switch(self):
        product = ProductItem(source="x.jpg")
        strict = compose_product_render(product, RenderParameters(allow_external_items=False))
        assert "Do NOT add any objects" in strict.instruction

    def test_max_width_applied(self):
        composed = compose_product_render(
            ProductItem(source="x.jpg"), RenderParameters(), "mood.jpg", max_width=512
        )
        assert {ref.max_width for ref in composed.references} == {512}

    def test_deterministic(self):
        product = ProductItem(source="sofa.jpg")
        params = RenderParameters()
        assert compose_product_render(product, params, "m.jpg") == compose_product_render(
            product, params, "m.jpg"
        )


class TestComposeMasterScene:
    def test_reference_order_with_mood_board(self, products):
        composed = compose_scene(
            products, StagingParameters(), CameraAngle.WIDE, mood_board="mood.jpg"
        )
        assert composed.sources == ["mood.jpg", "sofa.jpg", "lamp.jpg"]
        assert composed.references[0].caption == SCENE_MOOD_BOARD_CAPTION
        assert "EMULATE THE VISUAL STYLE" in composed.instruction

    def test_reference_order_without_mood_board(self, products):
        composed = compose_scene(products, StagingParameters(), CameraAngle.WIDE)
        assert composed.sources == ["sofa.jpg", "lamp.jpg"]
        assert all(ref.role is ReferenceRole.PRODUCT for ref in composed.references)

    def test_master_instruction(self, products):
        composed = compose_scene(products, StagingParameters(), CameraAngle.WIDE)
        assert "TASK: ESTABLISH MASTER LAYOUT (REFERENCE SHOT)" in composed.instruction
        assert "CAMERA RELOCATION" not in composed.instruction
        assert composed.instruction.endswith(
            f"Current Camera Angle: {describe_angle(CameraAngle.WIDE)}"
        )

    def test_product_width_bound(self, products):
        composed = compose_scene(
            products,
            StagingParameters(),
            CameraAngle.WIDE,
            mood_board="mood.jpg",
            max_width=1024,
            product_max_width=800,
        )
        assert [ref.max_width for ref in composed.references] == [1024, 800, 800]


class TestComposeDependentScene:
    def test_master_shot_first(self, products):
        composed = compose_scene(
            products,
            StagingParameters(),
            CameraAngle.CLOSEUP,
            mood_board="mood.jpg",
            master_shot="outputs/master.png",
        )
        assert composed.sources == ["outputs/master.png", "sofa.jpg", "lamp.jpg"]
        master = composed.references[0]
        assert master.role is ReferenceRole.MASTER_SHOT
        assert master.caption == MASTER_SHOT_CAPTION

    def test_mood_board_not_sent(self, products):
        """The master shot already carries the style."""
        composed = compose_scene(
            products,
            StagingParameters(),
            CameraAngle.MEDIUM,
            mood_board="mood.jpg",
            master_shot="master.png",
        )
        assert "mood.jpg" not in composed.sources

    def test_relocation_instruction(self, products):
        composed = compose_scene(
            products, StagingParameters(), CameraAngle.TOP_DOWN, master_shot="master.png"
        )
        assert "CRITICAL TASK: CAMERA RELOCATION (SPATIAL CHANGE)" in composed.instruction
        assert "ESTABLISH MASTER LAYOUT" not in composed.instruction
        assert "Top-down" in composed.instruction
        assert describe_angle(CameraAngle.TOP_DOWN) in composed.instruction

    def test_deterministic(self, products):
        args = (products, StagingParameters(), CameraAngle.MEDIUM)
        first = compose_scene(*args, master_shot="m.png")
        second = compose_scene(*args, master_shot="m.png")
        assert first.instruction == second.instruction
        assert first.references == second.references


class TestComposeEdit:
    def test_single_reference(self):
        composed = compose_edit("render.png", "make the sofa blue")
        assert composed.sources == ["render.png"]
        assert composed.references[0].role is ReferenceRole.EDIT_SOURCE

    def test_instruction_text(self):
        composed = compose_edit("render.png", "  make the sofa blue.  ")
        assert composed.instruction == (
            "Refine this image: make the sofa blue. Maintain original composition."
        )
