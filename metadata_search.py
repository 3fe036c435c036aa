"""
Search GA4 property metadata (dimension and metric definitions).
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

SEARCH_FIELDS = ("apiName", "uiName", "description")


class MetadataKind(str, Enum):
    DIMENSIONS = "dimensions"
    METRICS = "metrics"
    BOTH = "both"


def _kinds(kind: Union[MetadataKind, str]) -> List[str]:
    kind = MetadataKind(kind)
    if kind == MetadataKind.BOTH:
        return [MetadataKind.DIMENSIONS.value, MetadataKind.METRICS.value]
    return [kind.value]


def matches_text(descriptor: Mapping[str, Any], needle: str) -> bool:
    """Case-insensitive substring match on apiName, uiName or description"""
    if not needle:
        return True
    for field in SEARCH_FIELDS:
        value = descriptor.get(field)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


def search_descriptors(descriptors, query_text: str = "", category: Optional[str] = None) -> List[Mapping[str, Any]]:
    needle = (query_text or "").lower()
    return [
        descriptor for descriptor in descriptors or []
        if (category is None or descriptor.get("category") == category)
        and matches_text(descriptor, needle)
    ]


def search_metadata(
    metadata: Mapping[str, Any],
    query_text: str = "",
    kind: Union[MetadataKind, str] = MetadataKind.BOTH,
    category: Optional[str] = None,
) -> Dict[str, List[Mapping[str, Any]]]:
    """
    Filter a metadata document by text and category.

    Text matching is case-insensitive; category is compared verbatim. An empty query
    matches every descriptor. Only the lists selected by kind appear in the result.
    """
    return {
        key: search_descriptors(metadata.get(key), query_text, category)
        for key in _kinds(kind)
    }


def select_metadata(
    metadata: Mapping[str, Any],
    kind: Union[MetadataKind, str] = MetadataKind.BOTH,
    custom_only: bool = False,
) -> Dict[str, List[Mapping[str, Any]]]:
    """Restrict a metadata document to the requested lists, optionally to custom definitions"""
    result = {}
    for key in _kinds(kind):
        descriptors = list(metadata.get(key) or [])
        if custom_only:
            descriptors = [d for d in descriptors if d.get("customDefinition")]
        result[key] = descriptors
    return result


def list_categories(descriptors) -> List[str]:
    return sorted({d.get("category") for d in descriptors or [] if d.get("category")})
