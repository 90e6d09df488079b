"""Read-only capability table mapping module ids to their declared contracts."""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from ..models.core import ModuleDescriptor
from .logging import get_logger

logger = get_logger(__name__)


class CapabilityRegistry:
    """Immutable lookup of module descriptors.

    A registry is built once from a snapshot of descriptors and passed
    explicitly to the executor and the inspector, so concurrent runs never
    share mutable catalogue state.
    """

    def __init__(self, descriptors: Iterable[ModuleDescriptor] = ()):
        table: Dict[str, ModuleDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in table:
                logger.warning(f"Duplicate capability '{descriptor.id}', keeping the last definition")
            table[descriptor.id] = descriptor
        self._table: Mapping[str, ModuleDescriptor] = MappingProxyType(table)

    @classmethod
    def coerce(cls, capabilities) -> "CapabilityRegistry":
        """Accept either a registry or any iterable of descriptors."""
        if isinstance(capabilities, CapabilityRegistry):
            return capabilities
        return cls(capabilities or ())

    def get_capability(self, module_id: str) -> Optional[ModuleDescriptor]:
        """Return the descriptor for a module id, or None when unknown."""
        return self._table.get(module_id)

    def list_capabilities(self) -> List[ModuleDescriptor]:
        return list(self._table.values())

    def module_map(self) -> Mapping[str, ModuleDescriptor]:
        return self._table

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._table

    def __len__(self) -> int:
        return len(self._table)

    def __iter__(self):
        return iter(self._table.values())
