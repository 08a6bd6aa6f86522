"""Persistence of generated images.

Each generated image is written to ``outputs_dir`` under an auto-generated
name (kind, item id, timestamp, short random suffix) and, optionally, a
sibling ``.json`` file with the instruction and generation metadata.  The
returned path is what the store records as the item's output reference.
"""

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from .model_adapters import ImagePayload

logger = logging.getLogger(__name__)


def build_output_path(outputs_dir: Path, prefix: str, extension: str) -> Path:
    """Return a fresh output path inside ``outputs_dir``."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    safe_prefix = prefix.replace(" ", "_").replace("/", "_").replace("\\", "_")
    return outputs_dir / f"{safe_prefix}_{timestamp}_{uuid.uuid4().hex[:6]}{extension}"


def save_render(
    image: ImagePayload,
    outputs_dir: Path,
    prefix: str,
    metadata: dict[str, Any] | None = None,
) -> Path:
    """Write a generated image (and optional metadata) to disk.

    Args:
        image: Generated image payload
        outputs_dir: Directory to write into (created if missing)
        prefix: Filename prefix, e.g. ``"scene_ab12cd34e"``
        metadata: If given, written to a ``.json`` file next to the image

    Returns:
        Path of the saved image
    """
    outputs_dir.mkdir(parents=True, exist_ok=True)
    output_path = build_output_path(outputs_dir, prefix, image.extension)

    try:
        output_path.write_bytes(image.data)
        logger.info(f"Image saved to {output_path}")
    except OSError as e:
        logger.error(f"Failed to save image: {e}")
        raise

    if metadata is not None:
        record = {
            **metadata,
            "mime_type": image.mime_type,
            "timestamp": datetime.now().isoformat(),
            "image_path": str(output_path),
        }
        json_path = output_path.with_suffix(".json")
        try:
            with open(json_path, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2, ensure_ascii=False)
            logger.info(f"Saved metadata to: {json_path}")
        except (OSError, TypeError) as e:
            logger.error(f"Failed to save metadata: {e}", exc_info=True)

    return output_path
