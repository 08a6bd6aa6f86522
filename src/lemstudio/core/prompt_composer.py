"""Instruction text and reference ordering for every request kind.

Three request kinds are composed here:

- **Product render**: one product photo placed into a rendered room.
- **Scene**: a staged room with several products, either the *master* shot
  that establishes the layout, or a *dependent* shot that relocates the camera
  inside the master's room.
- **Edit**: a free-form refinement of an existing render.

Every function is pure: the same inputs produce a byte-identical instruction
and the same reference order.  Missing optional inputs (no mood board, no
master shot) select an alternate branch and are never an error.

Reference Ordering
------------------
::

    product render:   [product, mood board?]
    master scene:     [mood board?, product 1, ..., product N]
    dependent scene:  [master shot, product 1, ..., product N]
    edit:             [source image]

The dependent scene does not send the mood board: the master shot already
carries its style.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from .models import CameraAngle, ProductItem, RenderParameters, StagingParameters

# ---------------------------------------------------------------------------
# Fixed phrases.
# ---------------------------------------------------------------------------

_ANGLE_DESCRIPTIONS: dict[CameraAngle, str] = {
    CameraAngle.WIDE: "Panoramic wide shot showing the full architectural context.",
    CameraAngle.MEDIUM: "Medium range shot, focusing on the main group of objects.",
    CameraAngle.CLOSEUP: (
        "Macro-style detail shot. Zoom in very close to show texture and materials "
        "of the products."
    ),
    CameraAngle.TOP_DOWN: (
        "BIRD'S EYE VIEW. Camera is on the ceiling looking directly down at the floor layout."
    ),
    CameraAngle.SIDE_PERSPECTIVE: "Diagonal 45-degree corner view of the scene.",
    CameraAngle.DETAIL_MACRO: "Extreme close-up on surface finishes, seams, and wood grain.",
}

MOOD_BOARD_CAPTION = "REFER TO THIS MOOD BOARD FOR VISUAL STYLE."
SCENE_MOOD_BOARD_CAPTION = "THIS IS THE MOOD BOARD REFERENCE. EMULATE THIS STYLE."
MASTER_SHOT_CAPTION = "THIS IS THE MASTER SHOT ENVIRONMENT REFERENCE. CLONE THIS ROOM EXACTLY."

_PRODUCT_MOOD_BOARD_DIRECTIVE = (
    "CRITICAL: Emulate the EXACT visual style, color grading, and material finishes "
    "from the provided MOOD BOARD image."
)


class ReferenceRole(str, Enum):
    PRODUCT = "product"
    MOOD_BOARD = "mood_board"
    MASTER_SHOT = "master_shot"
    EDIT_SOURCE = "edit_source"


@dataclass(frozen=True)
class ReferenceImage:
    """A reference image to load and send, in request order.

    Attributes:
        source: Path, URL or data URI of the image.
        role: Why the image is sent.
        max_width: Width bound applied when the image is loaded.
        caption: Optional text sent right after the image.
    """

    source: str
    role: ReferenceRole
    max_width: int
    caption: str | None = None


@dataclass(frozen=True)
class ComposedRequest:
    """References plus instruction for one remote call."""

    references: tuple[ReferenceImage, ...]
    instruction: str

    @property
    def sources(self) -> list[str]:
        return [reference.source for reference in self.references]


def describe_angle(angle: CameraAngle | str) -> str:
    """Return the fixed description of a camera angle.

    Unknown values fall back to their raw label.
    """
    description = _ANGLE_DESCRIPTIONS.get(angle)
    if description is not None:
        return description
    return str(getattr(angle, "value", angle))


def _label(value) -> str:
    return str(getattr(value, "value", value))


def _external_items_line(params: RenderParameters) -> str:
    if params.allow_external_items:
        return "Supporting decor and props may be added to complete the scene."
    return "Do NOT add any objects other than the provided products."


def compose_product_render(
    product: ProductItem,
    params: RenderParameters,
    mood_board: str | None = None,
    *,
    max_width: int = 1024,
) -> ComposedRequest:
    """Compose a single-product render request.

    Args:
        product: Product whose photo is rendered.
        params: Render parameters snapshot.
        mood_board: Optional mood board image source.
        max_width: Width bound for the product and mood board images.

    Returns:
        References ``[product, mood board?]`` and the instruction text.
    """
    references = [ReferenceImage(product.source, ReferenceRole.PRODUCT, max_width)]
    if mood_board:
        references.append(
            ReferenceImage(mood_board, ReferenceRole.MOOD_BOARD, max_width, MOOD_BOARD_CAPTION)
        )

    lines = [
        "Professional CGI Product Rendering.",
        f"Product: {_label(product.view_type)} view.",
        f"Environment: {params.space_type} {_label(params.room_type)}.",
        f"Style: {_label(params.design_style)}.",
        f"Lighting: {_label(params.lighting_env)}, {params.lighting_direction} direction.",
        f"Color palette: {params.color_palette}.",
        f"Mood: {params.mood}.",
        "Task: Place the product naturally in the scene with realistic shadows and materials.",
        _external_items_line(params),
    ]
    if mood_board:
        lines.append(_PRODUCT_MOOD_BOARD_DIRECTIVE)

    return ComposedRequest(tuple(references), "\n".join(lines))


def _numbered(steps: list[str]) -> list[str]:
    return [f"{index}. {step}" for index, step in enumerate(steps, start=1)]


def compose_scene(
    products: Sequence[ProductItem],
    params: StagingParameters,
    angle: CameraAngle | str,
    mood_board: str | None = None,
    master_shot: str | None = None,
    *,
    max_width: int = 1024,
    product_max_width: int = 800,
) -> ComposedRequest:
    """Compose a scene request: master establishment or camera relocation.

    Args:
        products: Products that appear in the scene.
        params: Staging parameters snapshot.
        angle: Target camera angle.
        mood_board: Optional mood board image source (master shot only).
        master_shot: Output of the run's master shot.  When given, the request
            is a dependent shot conditioned on it.
        max_width: Width bound for the master shot / mood board image.
        product_max_width: Width bound for product images.

    Returns:
        The ordered references and instruction text.
    """
    angle_label = _label(angle)
    angle_description = describe_angle(angle)
    references: list[ReferenceImage] = []

    if master_shot:
        references.append(
            ReferenceImage(master_shot, ReferenceRole.MASTER_SHOT, max_width, MASTER_SHOT_CAPTION)
        )
        task = ["CRITICAL TASK: CAMERA RELOCATION (SPATIAL CHANGE)"] + _numbered(
            [
                f"YOU MUST MOVE THE CAMERA to a totally different position for this {angle_label}.",
                "DO NOT DUPLICATE the framing of the Master Shot. "
                f"This image MUST be a {angle_description}",
                "SPATIAL CONSISTENCY: Keep the room structure (walls, floor, ceiling), windows, "
                "lighting, and ALL furniture positions exactly as seen in the MASTER SHOT.",
                "CLONE the materials and lighting atmosphere from the Master Shot, "
                "but RENDER it from the NEW camera position.",
            ]
        )
    else:
        if mood_board:
            references.append(
                ReferenceImage(
                    mood_board, ReferenceRole.MOOD_BOARD, max_width, SCENE_MOOD_BOARD_CAPTION
                )
            )
        steps = [
            f"Create the definitive architectural staging for this {_label(params.room_type)}.",
            "Set the ground truth for floor materials, wall colors, furniture positions, "
            f"and the {_label(params.lighting_env)} lighting.",
            f"Arrange the products in a {params.arrangement_style} composition "
            f"with a {params.layout_density} layout density.",
        ]
        if mood_board:
            steps.append("EMULATE THE VISUAL STYLE AND ATMOSPHERE OF THE MOOD BOARD.")
        steps.append("This is the MASTER SHOT that all subsequent shots will follow.")
        task = ["TASK: ESTABLISH MASTER LAYOUT (REFERENCE SHOT)"] + _numbered(steps)

    references.extend(
        ReferenceImage(product.source, ReferenceRole.PRODUCT, product_max_width)
        for product in products
    )

    lines = ["Professional Interior CGI Staging Visualization.", ""]
    lines.extend(task)
    lines.extend(
        [
            "",
            f"Atmosphere: {params.mood}. Style: {_label(params.design_style)}. "
            f"Lighting: {_label(params.lighting_env)}, {params.lighting_direction} direction.",
            f"Space: {params.space_type}. Color palette: {params.color_palette}.",
            _external_items_line(params),
            f"Current Camera Angle: {angle_description}",
        ]
    )

    return ComposedRequest(tuple(references), "\n".join(lines))


def compose_edit(source: str, instruction: str, *, max_width: int = 1024) -> ComposedRequest:
    """Compose a free-form edit of an existing image.

    Args:
        source: The image to refine.
        instruction: Natural-language description of the change.
        max_width: Width bound for the source image.
    """
    change = instruction.strip().rstrip(".")
    return ComposedRequest(
        (ReferenceImage(source, ReferenceRole.EDIT_SOURCE, max_width),),
        f"Refine this image: {change}. Maintain original composition.",
    )
