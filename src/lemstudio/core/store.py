"""In-memory work item store for one Lem Studio collection.

The store holds everything a render run reads (mode, parameters, mood board,
product photos) and everything it writes (render status and outputs of
product and scene items).  The orchestrator receives the store explicitly and
only touches it through :meth:`WorkItemStore.list_items`,
:meth:`WorkItemStore.update_status` and :meth:`WorkItemStore.append_items`.
The remaining methods are the editing operations a front end performs
between runs.

Nothing is persisted: a new process starts with an empty collection.
"""

import logging
from collections.abc import Callable, Iterable

from .models import (
    CameraAngle,
    InputStatus,
    ProductItem,
    RenderParameters,
    RenderStatus,
    RunMode,
    SceneItem,
    StagingParameters,
    ViewType,
    WorkItem,
    check_transition,
)

logger = logging.getLogger(__name__)


def _revalidate(params: RenderParameters, changes: dict) -> RenderParameters:
    # model_copy(update=...) skips validation, so rebuild through the model
    return type(params).model_validate({**params.model_dump(), **changes})


class WorkItemStore:
    """Mutable collection of product photos and staged scenes.

    Attributes:
        name: Collection name.
        mode: Pipeline shape used by the next run.
        parameters: Parameters for individual product renders.
        staging_parameters: Parameters for room staging.
        reference_image: Optional mood board source.
        is_confirmed: Whether the imported products were confirmed.
    """

    def __init__(
        self,
        name: str = "New Project",
        mode: RunMode = RunMode.INDIVIDUAL,
        parameters: RenderParameters | None = None,
        staging_parameters: StagingParameters | None = None,
    ) -> None:
        self.name = name
        self.mode = mode
        self.parameters = parameters or RenderParameters()
        self.staging_parameters = staging_parameters or StagingParameters()
        self.reference_image: str | None = None
        self.is_confirmed = False
        self._products: list[ProductItem] = []
        self._scenes: list[SceneItem] = []

    def __repr__(self) -> str:
        return (
            f"WorkItemStore(name={self.name!r}, mode={self.mode.value}, "
            f"products={len(self._products)}, scenes={len(self._scenes)})"
        )

    # ------------------------------------------------------------------
    # Operations used by the orchestrator
    # ------------------------------------------------------------------

    @property
    def products(self) -> list[ProductItem]:
        return list(self._products)

    @property
    def scenes(self) -> list[SceneItem]:
        return list(self._scenes)

    def list_items(
        self,
        kind: str | None = None,
        predicate: Callable[[WorkItem], bool] | None = None,
    ) -> list[WorkItem]:
        """List work items in insertion order.

        Args:
            kind: ``"product"``, ``"scene"`` or None for both
            predicate: Optional filter applied to each item

        Returns:
            Matching items (products first, then scenes)
        """
        if kind not in (None, ProductItem.kind, SceneItem.kind):
            raise ValueError(f"Unknown work item kind: {kind!r}")

        items: list[WorkItem] = []
        if kind in (None, ProductItem.kind):
            items.extend(self._products)
        if kind in (None, SceneItem.kind):
            items.extend(self._scenes)

        if predicate is not None:
            items = [item for item in items if predicate(item)]
        return items

    def get(self, item_id: str) -> WorkItem:
        """Look up a work item by id.

        Raises:
            KeyError: If no item has this id
        """
        for item in self.list_items():
            if item.id == item_id:
                return item
        raise KeyError(f"Work item '{item_id}' not found")

    def update_status(
        self, item_id: str, status: RenderStatus, output_ref: str | None = None
    ) -> WorkItem:
        """Change an item's render status and optionally its output.

        The previous output is kept when ``output_ref`` is None.

        Raises:
            KeyError: If no item has this id
            InvalidTransitionError: If the lifecycle forbids the change
        """
        item = self.get(item_id)
        check_transition(item.render_status, status)
        item.render_status = status
        if output_ref:
            item.rendered_url = output_ref
        logger.debug(f"{item.kind} {item.id} -> {status.value}")
        return item

    def append_items(self, items: Iterable[WorkItem]) -> None:
        """Append new work items as one batch."""
        items = list(items)
        known = {item.id for item in self.list_items()}
        for item in items:
            if not isinstance(item, (ProductItem, SceneItem)):
                raise TypeError(f"Unsupported work item type: {type(item).__name__}")
            if item.id in known:
                raise ValueError(f"Duplicate work item id: {item.id}")
            known.add(item.id)

        for item in items:
            if isinstance(item, ProductItem):
                self._products.append(item)
            else:
                self._scenes.append(item)

    # ------------------------------------------------------------------
    # Collection editing between runs
    # ------------------------------------------------------------------

    def add_products(
        self, sources: Iterable[str], view_type: ViewType = ViewType.FRONT
    ) -> list[ProductItem]:
        """Import product photos.

        New products start imported and pending, and the collection has to be
        confirmed again.
        """
        new_items = [ProductItem(source=source, view_type=view_type) for source in sources]
        self.append_items(new_items)
        if new_items:
            self.is_confirmed = False
            logger.info(f"Imported {len(new_items)} product image(s)")
        return new_items

    def confirm_inputs(self) -> None:
        """Confirm every imported product."""
        for product in self._products:
            if product.input_status is InputStatus.IMPORTED:
                product.input_status = InputStatus.CONFIRMED
        self.is_confirmed = True

    def remove_product(self, item_id: str) -> ProductItem:
        """Mark a product as removed; it stays in the store but is never rendered."""
        product = self._get_product(item_id)
        product.input_status = InputStatus.REMOVED
        product.is_selected = False
        return product

    def replace_product(self, item_id: str, source: str) -> ProductItem:
        """Replace a product photo with a new one.

        The old item is marked replaced and a new imported item takes its
        view type.
        """
        old = self._get_product(item_id)
        old.input_status = InputStatus.REPLACED
        old.is_selected = False
        (new,) = self.add_products([source], view_type=old.view_type)
        return new

    def set_view_type(self, item_id: str, view_type: ViewType) -> None:
        self._get_product(item_id).view_type = view_type

    def toggle_selection(self, item_id: str) -> bool:
        product = self._get_product(item_id)
        product.is_selected = not product.is_selected
        return product.is_selected

    def set_mood_board(self, source: str | None) -> None:
        self.reference_image = source or None

    def set_mode(self, mode: RunMode) -> None:
        self.mode = mode

    def update_parameters(self, **changes) -> None:
        """Update the parameter set used by the current mode."""
        if self.mode is RunMode.INDIVIDUAL:
            self.parameters = _revalidate(self.parameters, changes)
        else:
            self.staging_parameters = _revalidate(self.staging_parameters, changes)

    def toggle_viewpoint(self, angle: CameraAngle) -> tuple[CameraAngle, ...]:
        """Add or remove a staging camera angle, keeping configured order."""
        current = self.staging_parameters.viewpoints
        if angle in current:
            viewpoints = tuple(v for v in current if v is not angle)
        else:
            viewpoints = current + (angle,)
        self.staging_parameters = _revalidate(self.staging_parameters, {"viewpoints": viewpoints})
        return viewpoints

    def _get_product(self, item_id: str) -> ProductItem:
        item = self.get(item_id)
        if not isinstance(item, ProductItem):
            raise KeyError(f"Work item '{item_id}' is not a product")
        return item
