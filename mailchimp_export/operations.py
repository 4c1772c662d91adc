"""Export operation table and query parameter filtering.

Each export operation is described once, at import time, by an
OperationDescriptor naming the query parameters it accepts and the framer
that decodes its response. Dispatch resolves descriptors by explicit lookup
in OPERATIONS.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from mailchimp_export.exceptions import ExportConfigurationError
from mailchimp_export.framing import Framer, frame_list_export, frame_subscriber_activity

# Parameters the dispatcher owns; never forwarded from caller input
RESERVED_PARAMS = frozenset({"apikey", "stream"})


@dataclass(frozen=True)
class OperationDescriptor:
    """Static description of one export operation.

    Attributes:
        name: Operation name as it appears in the endpoint path.
        allowed_params: Query parameters forwarded to the service, in order.
        framer: Response framer, or None to decode the body as one document.
    """

    name: str
    allowed_params: tuple[str, ...]
    framer: Framer | None = None

    def __post_init__(self) -> None:
        reserved = RESERVED_PARAMS.intersection(self.allowed_params)
        if reserved:
            raise ExportConfigurationError(
                f"Operation '{self.name}' cannot accept reserved parameters: {', '.join(sorted(reserved))}",
                operation=self.name,
            )


LIST = OperationDescriptor(
    name="list",
    allowed_params=("id", "status", "segment", "since"),
    framer=frame_list_export,
)

CAMPAIGN_SUBSCRIBER_ACTIVITY = OperationDescriptor(
    name="campaignSubscriberActivity",
    allowed_params=("id", "include_empty", "since"),
    framer=frame_subscriber_activity,
)

OPERATIONS: Mapping[str, OperationDescriptor] = MappingProxyType(
    {op.name: op for op in (LIST, CAMPAIGN_SUBSCRIBER_ACTIVITY)}
)


def get_operation(
    name: str,
    operations: Mapping[str, OperationDescriptor] = OPERATIONS,
) -> OperationDescriptor:
    """Look up an operation descriptor by name.

    Raises:
        ExportConfigurationError: No operation is registered under that name.
    """
    try:
        return operations[name]
    except KeyError:
        raise ExportConfigurationError(
            f"Unknown export operation '{name}'. Available: {', '.join(sorted(operations))}",
            operation=name,
        ) from None


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten(name: str, value: Any) -> list[tuple[str, str]]:
    """Expand nested mappings into bracketed keys (``segment[match]=all``)."""
    if isinstance(value, Mapping):
        pairs: list[tuple[str, str]] = []
        for key, item in value.items():
            pairs.extend(_flatten(f"{name}[{key}]", item))
        return pairs
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        if any(isinstance(item, Mapping) for item in value):
            pairs = []
            for index, item in enumerate(value):
                pairs.extend(_flatten(f"{name}[{index}]", item))
            return pairs
        return [(name, _encode_value(item)) for item in value]
    return [(name, _encode_value(value))]


def filter_params(
    descriptor: OperationDescriptor,
    params: Mapping[str, Any] | None,
    api_key: str,
) -> list[tuple[str, str]]:
    """Build the query parameters for one request.

    The API key always comes first and cannot be overridden. Only parameters
    in the descriptor's allow-list are forwarded, in allow-list order; names
    outside it are dropped, as are parameters whose value is None. Booleans
    are sent as ``true``/``false``, lists of scalars as repeated keys and
    mappings (segment conditions) as bracketed keys.

    Returns:
        Ordered (name, value) pairs ready for URL encoding.
    """
    params = params or {}
    query: list[tuple[str, str]] = [("apikey", api_key)]

    for name in descriptor.allowed_params:
        if params.get(name) is None:
            continue
        query.extend(_flatten(name, params[name]))

    return query


__all__ = [
    "CAMPAIGN_SUBSCRIBER_ACTIVITY",
    "LIST",
    "OPERATIONS",
    "OperationDescriptor",
    "filter_params",
    "get_operation",
]
