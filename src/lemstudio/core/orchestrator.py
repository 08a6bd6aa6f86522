"""Render pipeline driver.

:class:`RenderOrchestrator` turns the state of a :class:`WorkItemStore` into an
ordered sequence of image-generation requests and writes every result back
into the store.  It supports exactly two pipeline shapes plus an edit
sub-flow:

Independent mode (``RunMode.INDIVIDUAL``)
    Every confirmed product that is not completed yet is rendered on its own,
    in list order, one call at a time.

Staging mode (``RunMode.STAGING``)
    The selected products are staged into one room seen from several camera
    angles.  Angles are ordered with ``WIDE`` first; the first angle is the
    *master* shot and its output is passed as the leading reference to every
    *dependent* shot so the room stays consistent.

Edit
    One rendered image (product or scene) is refined with a free-text
    instruction.

Execution Model
---------------
A run is a single coroutine.  Remote calls are awaited one after another and
request N+1 is never built before request N has resolved.  Rate limits are
retried inside :class:`RetryPolicy`; any other failure marks the in-flight
item ``error`` and halts the run.  Items completed before the failure keep
their results.  The run returns a :class:`RunReport` carrying at most one
user-facing error message.

Usage Example
-------------
    >>> store = WorkItemStore()
    >>> store.add_products(["sofa.jpg", "lamp.jpg"])
    >>> store.confirm_inputs()
    >>> orchestrator = RenderOrchestrator.from_config(store)
    >>> report = await orchestrator.run()
    >>> report.ok
    True
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from . import adapters  # noqa: F401  (registers model adapters)
from .config import LemStudioConfig
from .config import config as default_config
from .credentials import CredentialProvider
from .errors import (
    EmptyResponseError,
    EntityNotFoundError,
    InputsNotConfirmedError,
    LemStudioError,
    NothingSelectedError,
)
from .image_source import ImageLoader
from .model_adapters import GenerationRequest, ImageModelBase, RequestPart, model_registry
from .models import (
    CameraAngle,
    ProductItem,
    RenderStatus,
    RunMode,
    SceneItem,
    WorkItem,
)
from .outputs import save_render
from .prompt_composer import ComposedRequest, compose_edit, compose_product_render, compose_scene
from .retry import RetryPolicy
from .store import WorkItemStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


def order_angles(angles: Iterable[CameraAngle]) -> list[CameraAngle]:
    """Order staging angles so that ``WIDE`` comes first.

    The sort is stable: every other angle keeps its configured position
    relative to the others.
    """
    return sorted(angles, key=lambda angle: angle is not CameraAngle.WIDE)


@dataclass
class RunReport:
    """Summary of one orchestrator run.

    Attributes:
        mode: Pipeline shape that ran.
        processed: Ids of items a request was started for, in order.
        completed: Ids of items that completed.
        scene_ids: Ids of scene items created by a staging run.
        error: The error that halted the run, if any.
    """

    mode: RunMode
    processed: list[str] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    scene_ids: list[str] = field(default_factory=list)
    error: LemStudioError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str | None:
        """User-facing message for the failure, or None on success."""
        return self.error.user_message if self.error is not None else None

    @property
    def requires_key_selection(self) -> bool:
        """True when the user has to select an API key again."""
        return isinstance(self.error, EntityNotFoundError)


class RenderOrchestrator:
    """Drive independent renders, room staging and edits against a store.

    Args:
        store: Work item store read from and written to.
        model: Image model adapter making the remote calls.
        credentials: Provider resolving the API key once per run.
        loader: Reference image loader (default from config).
        retry_policy: Retry policy for remote calls (default from config).
        config: Configuration (default: global ``config``).
        on_progress: Optional callback receiving progress messages.
    """

    def __init__(
        self,
        store: WorkItemStore,
        model: ImageModelBase,
        credentials: CredentialProvider,
        *,
        loader: ImageLoader | None = None,
        retry_policy: RetryPolicy | None = None,
        config: LemStudioConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.store = store
        self.model = model
        self.credentials = credentials
        self.config = config or default_config
        self.loader = loader or ImageLoader.from_config(self.config)
        self.retry_policy = retry_policy or RetryPolicy.from_config(self.config)
        self.on_progress = on_progress

    @classmethod
    def from_config(
        cls,
        store: WorkItemStore,
        config: LemStudioConfig | None = None,
        **kwargs,
    ) -> "RenderOrchestrator":
        """Build an orchestrator with the configured model adapter and key."""
        config = config or default_config
        model = model_registry.instantiate(config.default_model_adapter, config)
        credentials = kwargs.pop("credentials", None) or CredentialProvider.from_config(config)
        return cls(store, model, credentials, config=config, **kwargs)

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def run(self) -> RunReport:
        """Run the pipeline shape selected by the store's mode."""
        if self.store.mode is RunMode.STAGING:
            return await self.stage_room()
        return await self.render_products()

    async def render_products(self) -> RunReport:
        """Render every confirmed, not yet completed product in list order."""
        report = RunReport(RunMode.INDIVIDUAL)
        try:
            self._require_confirmed()
            api_key = self.credentials.resolve()

            params = self.store.parameters
            mood_board = self.store.reference_image
            products = self.store.list_items(
                ProductItem.kind,
                lambda item: item.is_confirmed and item.render_status is not RenderStatus.COMPLETED,
            )
            logger.info(f"Rendering {len(products)} product(s) individually")

            for index, product in enumerate(products, start=1):
                self._progress(f"Rendering product {index}/{len(products)}...")
                composed = compose_product_render(
                    product, params, mood_board, max_width=self.config.product_max_width
                )
                await self._render_item(product, composed, api_key, report)
        except LemStudioError as e:
            self._fail(report, e)
        return report

    async def stage_room(self) -> RunReport:
        """Stage the selected products from every configured camera angle."""
        report = RunReport(RunMode.STAGING)
        try:
            self._require_confirmed()
            selected = self.store.list_items(
                ProductItem.kind, lambda item: item.is_selected and item.is_confirmed
            )
            if not selected:
                raise NothingSelectedError("No confirmed product is selected for staging")

            params = self.store.staging_parameters
            angles = order_angles(params.viewpoints)
            if not angles:
                logger.warning("No camera angles configured, nothing to stage")
                return report

            api_key = self.credentials.resolve()

            product_ids = tuple(product.id for product in selected)
            scenes = [SceneItem(product_ids=product_ids, angle=angle) for angle in angles]
            self.store.append_items(scenes)
            report.scene_ids = [scene.id for scene in scenes]
            logger.info(
                f"Staging {len(selected)} product(s) from {len(scenes)} angle(s), "
                f"master: {scenes[0].angle.value}"
            )

            # Lives only in this frame; never written back to the store
            master_shot: str | None = None
            for index, scene in enumerate(scenes):
                if index == 0:
                    self._progress("Establishing master shot...")
                else:
                    self._progress(f"Relocating to angle: {scene.angle.value}...")

                composed = compose_scene(
                    selected,
                    params,
                    scene.angle,
                    mood_board=self.store.reference_image,
                    master_shot=master_shot,
                    max_width=self.config.product_max_width,
                    product_max_width=self.config.scene_product_max_width,
                )
                output = await self._render_item(scene, composed, api_key, report)
                if index == 0:
                    master_shot = output
        except LemStudioError as e:
            self._fail(report, e)
        return report

    async def edit(self, item_id: str, instruction: str) -> WorkItem:
        """Refine a rendered image with a free-text instruction.

        On success the item's output is replaced and it ends ``completed``.
        On failure the item's previous status and output are restored and the
        error is raised to the caller.

        Args:
            item_id: Product or scene item with a rendered image
            instruction: Natural-language description of the change

        Returns:
            The updated work item

        Raises:
            KeyError: If the item does not exist
            ValueError: If the item has no render or the instruction is blank
            LemStudioError: If the edit request fails
        """
        item = self.store.get(item_id)
        if not item.rendered_url:
            raise ValueError(f"{item.kind} {item.id} has no rendered image to edit")
        if not instruction or not instruction.strip():
            raise ValueError("instruction is required for image editing")

        api_key = self.credentials.resolve()
        previous_status = item.render_status
        composed = compose_edit(
            item.rendered_url, instruction, max_width=self.config.product_max_width
        )

        self.store.update_status(item.id, RenderStatus.PROCESSING)
        try:
            output = await self._generate(item, composed, api_key)
        except EntityNotFoundError:
            self.store.update_status(item.id, previous_status)
            self.credentials.invalidate()
            raise
        except BaseException as e:
            # Also runs on cancellation so the item never stays processing
            self.store.update_status(item.id, previous_status)
            logger.error(f"Edit of {item.kind} {item.id} failed: {e!r}")
            raise

        logger.info(f"Edited {item.kind} {item.id}")
        return self.store.update_status(item.id, RenderStatus.COMPLETED, output)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_confirmed(self) -> None:
        if not self.store.is_confirmed:
            raise InputsNotConfirmedError("Collection inputs are not confirmed")

    def _progress(self, message: str) -> None:
        logger.info(message)
        if self.on_progress is not None:
            self.on_progress(message)

    def _fail(self, report: RunReport, error: LemStudioError) -> None:
        if isinstance(error, EntityNotFoundError):
            self.credentials.invalidate()
        report.error = error
        logger.error(f"{report.mode.value} run halted: {error}")

    async def _render_item(
        self,
        item: WorkItem,
        composed: ComposedRequest,
        api_key: str,
        report: RunReport,
    ) -> str:
        self.store.update_status(item.id, RenderStatus.PROCESSING)
        report.processed.append(item.id)
        try:
            output = await self._generate(item, composed, api_key)
        except BaseException:
            # Also runs on cancellation so the item never stays processing
            self.store.update_status(item.id, RenderStatus.ERROR)
            raise
        self.store.update_status(item.id, RenderStatus.COMPLETED, output)
        report.completed.append(item.id)
        return output

    async def _build_request(self, composed: ComposedRequest) -> GenerationRequest:
        parts: list[RequestPart] = []
        for reference in composed.references:
            parts.append(await self.loader.load(reference.source, reference.max_width))
            if reference.caption:
                parts.append(reference.caption)
        return GenerationRequest(
            parts=tuple(parts),
            instruction=composed.instruction,
            aspect_ratio=self.config.aspect_ratio,
            image_size=self.config.image_size,
        )

    async def _generate(self, item: WorkItem, composed: ComposedRequest, api_key: str) -> str:
        """Execute one request and return the saved output reference."""
        request = await self._build_request(composed)
        result = await self.retry_policy.execute(
            lambda: self.model.generate(request, api_key=api_key)
        )
        result.raise_for_outcome()
        if result.image is None:
            detail = f": {result.text}" if result.text else ""
            logger.warning(f"No image returned for {item.kind} {item.id}{detail}")
            raise EmptyResponseError(f"No image returned for {item.kind} {item.id}{detail}")

        metadata = None
        if self.config.save_metadata:
            metadata = {
                "kind": item.kind,
                "item_id": item.id,
                "model": self.model.model_id,
                "instruction": composed.instruction,
                "references": [
                    "<inline>" if source.startswith("data:") else source
                    for source in composed.sources
                ],
            }
        path = save_render(
            result.image, self.config.outputs_dir, f"{item.kind}_{item.id}", metadata
        )
        return str(path)
