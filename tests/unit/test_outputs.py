"""Unit tests for saving generated images and metadata."""

import json

from lemstudio.core.model_adapters import ImagePayload
from lemstudio.core.outputs import build_output_path, save_render


class TestBuildOutputPath:
    def test_prefix_and_extension(self, temp_dir):
        path = build_output_path(temp_dir, "scene_abc", ".png")
        assert path.parent == temp_dir
        assert path.name.startswith("scene_abc_")
        assert path.suffix == ".png"

    def test_unsafe_characters_replaced(self, temp_dir):
        path = build_output_path(temp_dir, "my scene/one", ".jpg")
        assert path.parent == temp_dir
        assert path.name.startswith("my_scene_one_")

    def test_unique(self, temp_dir):
        assert build_output_path(temp_dir, "p", ".png") != build_output_path(temp_dir, "p", ".png")


class TestSaveRender:
    def test_writes_image(self, temp_dir):
        image = ImagePayload(b"\x89PNG fake", mime_type="image/png")
        path = save_render(image, temp_dir / "out", "product_1")
        assert path.read_bytes() == b"\x89PNG fake"
        assert path.suffix == ".png"
        assert not path.with_suffix(".json").exists()

    def test_jpeg_extension(self, temp_dir):
        path = save_render(ImagePayload(b"jpg"), temp_dir, "product_1")
        assert path.suffix == ".jpg"

    def test_writes_metadata(self, temp_dir):
        image = ImagePayload(b"data", mime_type="image/png")
        path = save_render(image, temp_dir, "scene_1", {"instruction": "Stage the room"})

        record = json.loads(path.with_suffix(".json").read_text(encoding="utf-8"))
        assert record["instruction"] == "Stage the room"
        assert record["mime_type"] == "image/png"
        assert record["image_path"] == str(path)
        assert "timestamp" in record

    def test_unserializable_metadata_does_not_fail(self, temp_dir):
        image = ImagePayload(b"data", mime_type="image/png")
        path = save_render(image, temp_dir, "scene_1", {"bad": object()})
        assert path.exists()
