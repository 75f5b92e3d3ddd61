"""Decompose multi-part chat messages into typed segments."""
from typing import Any, Iterable

from pydantic import ValidationError

from .logger import get_logger
from .schema import MessagePart, SegmentKind

logger = get_logger(__name__)

# Payload field holding the content of each recognised kind
PAYLOAD_FIELDS: dict[SegmentKind, str] = {
    SegmentKind.TEXT: "text",
    SegmentKind.IMAGE: "file",
    SegmentKind.RECORD: "file",
    SegmentKind.VIDEO: "file",
    SegmentKind.AT: "qq",
    SegmentKind.SHARE: "url",
    SegmentKind.REPLY: "id",
    SegmentKind.CONTACT: "id",
    SegmentKind.FORWARD: "id",
    SegmentKind.NODE: "id",
}


def _as_part(raw: Any) -> MessagePart:
    if isinstance(raw, MessagePart):
        return raw
    return MessagePart.model_validate(raw)


def extract_segments(parts: Iterable[Any]) -> list[tuple[SegmentKind, str]]:
    """Return (kind, content) for every usable part, in order.

    A part that cannot be decoded is skipped with a warning; the rest of the
    message is still decomposed.
    """
    segments: list[tuple[SegmentKind, str]] = []
    for raw in parts:
        try:
            part = _as_part(raw)
        except ValidationError as e:
            logger.warning(f"Skip malformed message part: {raw!r} ({e.error_count()} errors)")
            continue

        try:
            kind = SegmentKind(part.kind)
        except ValueError:
            logger.warning(f"Skip segment that is not pre-defined: type={part.kind} data={part.data}")
            continue

        value = part.data.get(PAYLOAD_FIELDS[kind])
        # bool is an int subclass but never a valid payload
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            logger.warning(f"Skip {kind.value} segment without usable payload: data={part.data}")
            continue
        content = str(value)

        if kind is SegmentKind.AT:
            try:
                content = str(int(content))
            except ValueError:
                logger.warning(f"At segment has content that is not an integer: {content}")
                continue

        segments.append((kind, content))
    return segments
