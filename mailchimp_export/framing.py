"""Response framing: decode line-delimited JSON export bodies into records.

The export service answers with one JSON value per line instead of a JSON
array. Transport chunks do not line up with record boundaries, so while
streaming the text after the last newline is held back as a remainder and
prepended to the next chunk. The remainder is returned alongside each batch
and threaded through by the caller; framers keep no state of their own.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from mailchimp_export.exceptions import ExportParseError, ExportServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Batch:
    """Records decoded by one framing step.

    Attributes:
        records: Decoded JSON values in arrival order.
        remainder: Unparsed text after the last newline, to prepend to the
            next chunk. Always empty outside streaming.
    """

    records: list[Any] = field(default_factory=list)
    remainder: str = ""


class Framer(Protocol):
    """Per-operation framing entry point."""

    def __call__(self, text: str | None, remainder: str = "", *, partial: bool = False) -> Batch: ...


def is_service_error(record: Any) -> bool:
    """Return True if a decoded record is an ``{"error", "code"}`` failure record."""
    return isinstance(record, dict) and bool(record.get("error"))


def raise_for_service_error(record: Any) -> None:
    """Raise ExportServiceError if the record reports a service failure."""
    if is_service_error(record):
        raise ExportServiceError(str(record["error"]), record.get("code"))


def frame_lines(text: str | None, remainder: str = "", *, partial: bool = False) -> Batch:
    """Split text on newlines and decode each line as one JSON value.

    Args:
        text: Newly received payload text.
        remainder: Remainder returned by the previous step of the same stream.
        partial: True while more text may follow. The final line is then held
            back as the new remainder instead of being parsed.

    Returns:
        Batch of decoded records and the new remainder.

    Raises:
        ExportParseError: A complete line is not valid JSON.
        ExportServiceError: The first record is a service error record.
    """
    lines = (remainder + (text or "")).split("\n")
    tail = lines.pop() if partial else ""

    records: list[Any] = []
    for number, line in enumerate(lines):
        line = line.rstrip("\r")
        if not line.strip():
            continue
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as e:
            raise ExportParseError(
                f"Error parsing JSON answer from MailChimp API: {e.msg}",
                line=number,
            ) from e

    if records:
        raise_for_service_error(records[0])

    return Batch(records=records, remainder=tail)


def frame_list_export(text: str | None, remainder: str = "", *, partial: bool = False) -> Batch:
    """Frame a list member export.

    The first record is the header row of column names, every following record
    is one member as an array of values in header order.
    """
    return frame_lines(text, remainder, partial=partial)


def frame_subscriber_activity(
    text: str | None, remainder: str = "", *, partial: bool = False
) -> Batch:
    """Frame a campaign subscriber activity export.

    Each record maps one email address to its list of activity events. The
    service omits the body entirely when the campaign has no activity, which
    is a successful empty result.
    """
    if not text and not remainder:
        return Batch()
    return frame_lines(text, remainder, partial=partial)


def frame_document(text: str | None) -> Any:
    """Decode a whole body as one JSON document.

    Used for operations without a registered framer.

    Raises:
        ExportParseError: The body is not a JSON document.
        ExportServiceError: The document is a service error record.
    """
    try:
        document = json.loads(text or "")
    except json.JSONDecodeError as e:
        raise ExportParseError(f"Error parsing JSON answer from MailChimp API: {e.msg}") from e
    raise_for_service_error(document)
    return document


def flush_remainder(framer: Framer, remainder: str) -> Batch:
    """Frame the remainder left over when a stream ends.

    At end of stream the held-back text is a complete final line without a
    trailing newline. If it still does not parse, the last record was
    truncated and ExportParseError is raised.
    """
    if not remainder.strip():
        return Batch()
    logger.debug("Flushing %d characters of remainder at end of stream", len(remainder))
    return framer(remainder, partial=False)


__all__ = [
    "Batch",
    "Framer",
    "flush_remainder",
    "frame_document",
    "frame_lines",
    "frame_list_export",
    "frame_subscriber_activity",
    "is_service_error",
    "raise_for_service_error",
]
