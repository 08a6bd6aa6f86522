"""Domain models for Lem Studio collections, parameters and work items.

Render parameters are immutable Pydantic models: one render call reads one
snapshot of them and nothing downstream may change it.  Work items are plain
dataclasses mutated in place by the orchestrator through the store.

Work Items
----------
A work item is either a :class:`ProductItem` (an imported product photo) or a
:class:`SceneItem` (a staged room scene).  Both carry a ``kind`` tag and share
the ``render_status`` / ``rendered_url`` fields, so code that only tracks
status can treat them uniformly while dispatch stays explicit::

    if isinstance(item, ProductItem):
        ...
    elif isinstance(item, SceneItem):
        ...

Render Status Lifecycle
-----------------------
::

    pending --> processing --> completed
                           \\-> error
    completed --> processing   (edit or re-render)
    error     --> processing   (new explicit run or edit)

Use :func:`check_transition` before changing ``render_status``.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidTransitionError


class ViewType(str, Enum):
    """Which side of the product the source photo shows."""

    TOP = "top"
    FRONT = "front"
    SIDE = "side"
    BACK = "back"
    DETAIL = "detail"


class CameraAngle(str, Enum):
    """Camera angles available for room staging."""

    WIDE = "Wide Shot"
    MEDIUM = "Medium Shot"
    CLOSEUP = "Close-up"
    TOP_DOWN = "Top-down"
    SIDE_PERSPECTIVE = "Side Perspective"
    DETAIL_MACRO = "Detail Shot"


class DesignStyle(str, Enum):
    MODERN = "Modern"
    MINIMAL = "Minimal"
    JAPANDI = "Japandi"
    SCANDINAVIAN = "Scandinavian"
    LUXURY = "Luxury"
    INDUSTRIAL = "Industrial"
    CLASSIC = "Classic"
    CONTEMPORARY = "Contemporary"


class RoomType(str, Enum):
    LIVING_ROOM = "Living Room"
    BEDROOM = "Bedroom"
    GARDEN = "Garden"
    FACADE = "Facade"
    SHOWROOM = "Showroom"
    OFFICE = "Office"
    KITCHEN = "Kitchen"
    DINING_ROOM = "Dining Room"
    LOBBY = "Lobby"


class LightingEnvironment(str, Enum):
    MORNING = "Natural Morning"
    GOLDEN_HOUR = "Golden Hour (Sunset)"
    HIGH_NOON = "High Noon (Bright)"
    STUDIO = "Studio Professional"
    NIGHT_INTERIOR = "Night (Warm Lights)"
    MOONLIGHT = "Night (Moonlight)"
    OVERCAST = "Soft Overcast"
    CINEMATIC = "Cinematic Moody"


class InputStatus(str, Enum):
    """Lifecycle of an imported product photo before rendering."""

    IMPORTED = "Imported"
    CONFIRMED = "Confirmed"
    REMOVED = "Removed"
    REPLACED = "Replaced"


class RenderStatus(str, Enum):
    """Lifecycle of a work item's image-generation attempt."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class RunMode(str, Enum):
    """Pipeline shape used by the orchestrator."""

    INDIVIDUAL = "Individual"
    STAGING = "Staging"


# Allowed render status transitions (source -> targets)
_TRANSITIONS: dict[RenderStatus, frozenset[RenderStatus]] = {
    RenderStatus.PENDING: frozenset({RenderStatus.PROCESSING}),
    RenderStatus.PROCESSING: frozenset({RenderStatus.COMPLETED, RenderStatus.ERROR}),
    RenderStatus.COMPLETED: frozenset({RenderStatus.PROCESSING}),
    RenderStatus.ERROR: frozenset({RenderStatus.PROCESSING}),
}


def check_transition(current: RenderStatus, target: RenderStatus) -> None:
    """Validate a render status change.

    Args:
        current: Status the item is in now
        target: Requested status

    Raises:
        InvalidTransitionError: If the lifecycle does not allow the change
    """
    if target not in _TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot move render status from '{current.value}' to '{target.value}'"
        )


class RenderParameters(BaseModel):
    """Parameters for a single-product render.

    Instances are frozen; use ``model_copy(update=...)`` to derive a changed
    set of parameters.

    Attributes:
        space_type: Interior or exterior setting.
        room_type: Room the product is placed in.
        lighting_env: Lighting environment preset.
        lighting_direction: Direction of the key light.
        design_style: Interior design style.
        color_palette: Free-text palette description.
        mood: Free-text mood description.
        allow_external_items: Whether the model may add decor that was not
            supplied as a product photo.
    """

    model_config = ConfigDict(frozen=True)

    space_type: Literal["Interior", "Exterior"] = "Interior"
    room_type: RoomType = RoomType.LIVING_ROOM
    lighting_env: LightingEnvironment = LightingEnvironment.MORNING
    lighting_direction: Literal["Front", "Side", "Back", "Overhead"] = "Side"
    design_style: DesignStyle = DesignStyle.MODERN
    color_palette: str = "Neutral & Warm"
    mood: str = "Sophisticated & Inviting"
    allow_external_items: bool = True


class StagingParameters(RenderParameters):
    """Render parameters extended with room staging settings.

    ``viewpoints`` keeps the order in which angles were configured.  Angles are
    selected with set semantics (a repeated angle is dropped), but the order
    matters: the orchestrator picks the master shot from it.
    """

    layout_density: Literal["Minimal", "Balanced", "Spacious"] = "Balanced"
    arrangement_style: Literal["Focal Point", "Symmetrical", "Organic"] = "Focal Point"
    viewpoints: tuple[CameraAngle, ...] = Field(
        default=(CameraAngle.WIDE, CameraAngle.MEDIUM, CameraAngle.CLOSEUP),
    )

    @field_validator("viewpoints")
    @classmethod
    def _drop_duplicate_viewpoints(cls, value: tuple[CameraAngle, ...]) -> tuple[CameraAngle, ...]:
        return tuple(dict.fromkeys(value))


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


@dataclass
class ProductItem:
    """An imported product photo.

    Attributes:
        source: Path, URL or data URI of the original photo.
        view_type: Which side of the product the photo shows.
        input_status: Import lifecycle (imported, confirmed, removed, replaced).
        is_selected: Whether the product takes part in room staging.
        render_status: Current render lifecycle stage.
        rendered_url: Output reference once a render completed.
        id: Identifier unique within a store.
    """

    kind: ClassVar[str] = "product"

    source: str
    view_type: ViewType = ViewType.FRONT
    input_status: InputStatus = InputStatus.IMPORTED
    is_selected: bool = False
    render_status: RenderStatus = RenderStatus.PENDING
    rendered_url: str | None = None
    id: str = field(default_factory=_new_id)

    @property
    def is_confirmed(self) -> bool:
        return self.input_status is InputStatus.CONFIRMED


@dataclass
class SceneItem:
    """A staged room scene rendered from one camera angle.

    ``product_ids`` is a tuple fixed at creation time.
    """

    kind: ClassVar[str] = "scene"

    product_ids: tuple[str, ...]
    angle: CameraAngle
    render_status: RenderStatus = RenderStatus.PENDING
    rendered_url: str | None = None
    id: str = field(default_factory=_new_id)


WorkItem = Union[ProductItem, SceneItem]
