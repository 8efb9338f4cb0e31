"""
Stage registry for the emission pipeline.

Stages register with an order; the pipeline for an entity is every
registered stage that applies to it, sorted by that order.
"""

from typing import Any, Dict, List, Optional, Tuple, Type

from ..logging_config import get_logger
from .core.config import GeneratorConfig
from .core.schema import EntitySpec
from .stages.base import EmissionStage

logger = get_logger(__name__)


class RegistryError(Exception):
    """Exception raised for registry-related errors."""

    pass


class StageRegistry:
    """Registry of emission stages."""

    def __init__(self):
        """Initialize empty registry."""
        self._stages: Dict[str, Tuple[int, Type[EmissionStage]]] = {}

    def register(
        self,
        name: str,
        stage_class: Type[EmissionStage],
        order: int,
        replace: bool = False,
    ):
        """
        Register a stage.

        Args:
            name: Stage name (e.g., 'properties', 'sync')
            stage_class: Class implementing EmissionStage
            order: Position in the pipeline; lower runs first
            replace: If True, replace an existing registration

        Raises:
            RegistryError: If the class is invalid or the name or order is taken
        """
        if not (isinstance(stage_class, type) and issubclass(stage_class, EmissionStage)):
            raise RegistryError("Stage class must inherit from EmissionStage")

        key = name.lower()

        if key in self._stages and not replace:
            raise RegistryError(f"Stage '{name}' is already registered")

        for other, (other_order, _) in self._stages.items():
            if other != key and other_order == order:
                raise RegistryError(
                    f"Stage '{name}' cannot use order {order}: taken by '{other}'"
                )

        self._stages[key] = (order, stage_class)
        logger.debug("Registered stage %s (order=%d)", key, order)

    def unregister(self, name: str):
        """Unregister a stage; unknown names are ignored."""
        self._stages.pop(name.lower(), None)

    def get_stage_class(self, name: str) -> Type[EmissionStage]:
        """
        Get the class registered under ``name``.

        Raises:
            RegistryError: If no stage has that name
        """
        key = name.lower()
        if key not in self._stages:
            raise RegistryError(
                f"No stage registered as '{name}'. "
                f"Available: {', '.join(self.list_stages())}"
            )
        return self._stages[key][1]

    def list_stages(self) -> List[str]:
        """Registered stage names in pipeline order."""
        return [name for name, _ in sorted(self._stages.items(), key=lambda kv: kv[1][0])]

    def is_registered(self, name: str) -> bool:
        return name.lower() in self._stages

    def build_pipeline(
        self, spec: EntitySpec, config: Optional[GeneratorConfig] = None
    ) -> List[EmissionStage]:
        """Instantiate, in order, every stage that applies to ``spec``."""
        pipeline = []
        for name in self.list_stages():
            stage_class = self._stages[name][1]
            if stage_class.applies_to(spec):
                pipeline.append(stage_class(spec, config))
        logger.debug(
            "Pipeline for %s: %s", spec.name, ", ".join(s.name for s in pipeline)
        )
        return pipeline

    def get_stage_info(self, name: str) -> Dict[str, Any]:
        """Information about a registered stage."""
        stage_class = self.get_stage_class(name)
        doc = (stage_class.__doc__ or "").strip().splitlines()
        return {
            "name": name.lower(),
            "order": self._stages[name.lower()][0],
            "class": stage_class.__name__,
            "module": stage_class.__module__,
            "description": doc[0] if doc else "",
        }


# Global registry instance - created once
_global_registry: Optional[StageRegistry] = None


def get_registry() -> StageRegistry:
    """Get the global stage registry, initializing if needed."""
    global _global_registry
    if _global_registry is None:
        _global_registry = StageRegistry()
        _auto_register_stages(_global_registry)
    return _global_registry


def _auto_register_stages(registry: StageRegistry):
    """Register the built-in stages."""
    from .stages.base import PropertyStage
    from .stages.sync import SyncStage

    registry.register(PropertyStage.name, PropertyStage, order=0)
    registry.register(SyncStage.name, SyncStage, order=100)


def register_stage(name: str, stage_class: Type[EmissionStage], order: int):
    """Register a stage in the global registry."""
    get_registry().register(name, stage_class, order)


def build_pipeline(
    spec: EntitySpec, config: Optional[GeneratorConfig] = None
) -> List[EmissionStage]:
    """Build the pipeline for ``spec`` from the global registry."""
    return get_registry().build_pipeline(spec, config)


def list_stages() -> List[str]:
    """List registered stages of the global registry."""
    return get_registry().list_stages()


def list_all_stage_info() -> List[Dict[str, Any]]:
    """Information about every registered stage, in pipeline order."""
    registry = get_registry()
    return [registry.get_stage_info(name) for name in registry.list_stages()]
