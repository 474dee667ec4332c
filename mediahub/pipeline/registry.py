"""
StepRegistry — knows every available upload step and their order.

Steps come from an explicit, ordered list of classes.  To add a step:
    1. Subclass UploadStep in mediahub/pipeline/steps/
    2. Append the class to DEFAULT_STEP_CLASSES below (or pass it via
       ``step_classes`` / ``register()``)
    3. The pipeline picks it up automatically, ordered by ``priority``

Classes are instantiated lazily, on first use, through a resolver
callable.  The default resolver passes the registry's UploadServices to
the constructor; tests and callers can substitute their own.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable
from typing import Any

from mediahub.core.logging import get_logger
from mediahub.pipeline.context import UploadContext
from mediahub.pipeline.dependencies import UploadServices
from mediahub.pipeline.errors import DiscoveryError
from mediahub.pipeline.step import UploadStep
from mediahub.pipeline.steps import (
    DetectDuplicatesStep,
    ExtractImageMetadataStep,
    PersistRecordStep,
    StoreFileStep,
    ValidateFileStep,
)

logger = get_logger(__name__)

StepResolver = Callable[[type[UploadStep]], UploadStep]


# ═══════════════════════════════════════════════════════════
#  Built-in steps
# ═══════════════════════════════════════════════════════════

DEFAULT_STEP_CLASSES: tuple[type[UploadStep], ...] = (
    ValidateFileStep,
    DetectDuplicatesStep,
    ExtractImageMetadataStep,
    StoreFileStep,
    PersistRecordStep,
)


class StepRegistry:
    """
    Name-keyed collection of step instances.

    Steps registered by hand take precedence over discovered steps with
    the same name.
    """

    def __init__(
        self,
        services: UploadServices | None = None,
        step_classes: Iterable[Any] | None = None,
        resolver: StepResolver | None = None,
    ) -> None:
        self.services = services
        self.step_classes = list(DEFAULT_STEP_CLASSES if step_classes is None else step_classes)
        self.resolver = resolver or self._default_resolver
        self._steps: dict[str, UploadStep] = {}
        self._discovered = False

    # ─── Registration ──────────────────────────────────

    def register(self, step: UploadStep) -> None:
        """Add ``step``, replacing any step already registered under its name."""
        self._steps[step.name] = step
        logger.debug("Upload step registered", step_name=step.name, priority=step.priority)

    def reset(self) -> None:
        """Forget all steps; the next lookup runs discovery again."""
        self._steps.clear()
        self._discovered = False

    # ─── Lookup ────────────────────────────────────────

    def all_steps(self) -> list[UploadStep]:
        """Every step, ascending by priority then name."""
        self._discover()
        return sorted(self._steps.values(), key=lambda s: (s.priority, s.name))

    def applicable_steps(self, ctx: UploadContext) -> list[UploadStep]:
        """Steps that will run for ``ctx``, in execution order."""
        return [step for step in self.all_steps() if step.can_handle(ctx)]

    def get(self, name: str) -> UploadStep | None:
        self._discover()
        return self._steps.get(name)

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def configuration_schema(self) -> dict[str, dict[str, Any]]:
        """Describe every step and its options, keyed by step name."""
        return {
            step.name: {
                "name": step.name,
                "description": step.description,
                "priority": step.priority,
                "options": step.configuration_options(),
                "class": step.class_path,
            }
            for step in self.all_steps()
        }

    # ─── Discovery ─────────────────────────────────────

    def _discover(self) -> None:
        if self._discovered:
            return
        self._discovered = True

        for candidate in self.step_classes:
            if not (inspect.isclass(candidate) and issubclass(candidate, UploadStep)):
                logger.warning("Ignoring non-step entry in step list", entry=repr(candidate))
                continue
            if inspect.isabstract(candidate):
                continue

            try:
                step = self._instantiate(candidate)
            except DiscoveryError as exc:
                logger.error(
                    "Failed to load upload step",
                    step_class=candidate.__qualname__,
                    error=str(exc),
                )
                continue

            # Manual registrations win over discovered defaults
            self._steps.setdefault(step.name, step)

        logger.info("Upload steps discovered", steps=sorted(self._steps))

    def _instantiate(self, step_class: type[UploadStep]) -> UploadStep:
        try:
            step = self.resolver(step_class)
        except Exception as exc:
            raise DiscoveryError(
                f"Could not instantiate {step_class.__qualname__}: {exc}",
                step_name=getattr(step_class, "name", None),
            ) from exc

        if not isinstance(step, UploadStep):
            raise DiscoveryError(
                f"Resolver returned {type(step).__name__} for {step_class.__qualname__}",
                step_name=getattr(step_class, "name", None),
            )
        return step

    def _default_resolver(self, step_class: type[UploadStep]) -> UploadStep:
        return step_class(self.services)
