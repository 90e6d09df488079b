"""Merge upstream result records into the single input a step receives.

Every field of an upstream result falls into one of three kinds:

* ``ARRAY``  - lists and tuples; values from all sources are concatenated in
  dependency order.
* ``OBJECT`` - mappings; shallow-merged, later sources overwrite earlier keys.
* ``SCALAR`` - everything else, opaque values included; the first value seen
  in dependency order wins.

The merged record of a multi-dependency step also carries ``_sources`` (the
dependency ids) and ``_allResults`` (the raw upstream records).
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .logging import get_logger

logger = get_logger(__name__)

SOURCES_FIELD = "_sources"
ALL_RESULTS_FIELD = "_allResults"


class FieldKind(str, Enum):
    """Merge behaviour of a result field."""
    ARRAY = "array"
    OBJECT = "object"
    SCALAR = "scalar"


def classify_field(value: Any) -> FieldKind:
    if isinstance(value, (list, tuple)):
        return FieldKind.ARRAY
    if isinstance(value, Mapping):
        return FieldKind.OBJECT
    return FieldKind.SCALAR


def merge_field(merged: Dict[str, Any], key: str, value: Any) -> None:
    """Fold one source value for ``key`` into ``merged`` in place."""
    kind = classify_field(value)
    existing = merged.get(key)

    if kind is FieldKind.ARRAY:
        if not isinstance(existing, list):
            if key in merged:
                logger.debug(f"Field '{key}' changes kind across sources; restarting as array")
            merged[key] = []
        merged[key].extend(value)
    elif kind is FieldKind.OBJECT:
        if isinstance(existing, list):
            # Array-valued in an earlier source: the field stays an array.
            logger.debug(f"Field '{key}' changes kind across sources; keeping array, object ignored")
            return
        if not isinstance(existing, dict):
            if key in merged:
                logger.debug(f"Field '{key}' changes kind across sources; restarting as object")
            merged[key] = {}
        merged[key].update(value)
    elif key not in merged:
        merged[key] = value


def merge_results(source_ids: Sequence[str], results: Sequence[Optional[Mapping[str, Any]]]) -> Dict[str, Any]:
    """Merge several upstream records.

    Args:
        source_ids: Dependency instance ids, in ``dependsOn`` order
        results: Result record of each dependency (None when it produced none)

    Returns:
        Merged record with ``_sources`` and ``_allResults`` attached
    """
    merged: Dict[str, Any] = {}
    all_results: List[Mapping[str, Any]] = []

    for result in results:
        if result is None:
            continue
        all_results.append(result)
        for key, value in result.items():
            merge_field(merged, key, value)

    merged[SOURCES_FIELD] = list(source_ids)
    merged[ALL_RESULTS_FIELD] = all_results
    return merged


def gather_inputs(depends_on: Sequence[str], results_by_id: Mapping[str, Optional[Mapping[str, Any]]]) -> Optional[Dict[str, Any]]:
    """Build the input of a step from its dependencies' results.

    No dependencies gives None; one dependency passes its record through
    unchanged; several are merged with :func:`merge_results`.
    """
    if not depends_on:
        return None

    if len(depends_on) == 1:
        return results_by_id.get(depends_on[0])

    return merge_results(depends_on, [results_by_id.get(dep_id) for dep_id in depends_on])
