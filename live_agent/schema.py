"""Data model and table layout for segment storage."""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import BigInteger, Column, Index, Integer, MetaData, Table, Text

RECALL_INDICATOR = "RECALL_INDICATOR"


class SegmentKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    RECORD = "record"
    VIDEO = "video"
    SHARE = "share"
    AT = "at"
    REPLY = "reply"
    CONTACT = "contact"
    FORWARD = "forward"
    NODE = "node"


class Segment(BaseModel):
    """One typed fragment of a group message, as persisted."""

    model_config = ConfigDict(frozen=True)

    message_id: int
    time: str
    sender_id: int
    sender_name: str
    kind: SegmentKind
    content: str
    interpretation: str = ""

    @property
    def is_tombstone(self) -> bool:
        return self.message_id == 0 and self.sender_name == RECALL_INDICATOR


class MessagePart(BaseModel):
    """A single part of an inbound message in OneBot wire shape."""

    model_config = ConfigDict(populate_by_name=True)

    kind: str = Field(alias="type")
    data: dict[str, Any] = {}


class InboundMessage(BaseModel):
    group_id: int
    message_id: int
    sender_id: int
    time: Optional[int] = None  # unix seconds, None means now
    parts: list[Any] = []


def segment_table(name: str, metadata: MetaData) -> Table:
    """Build the append-only segment table for one channel."""
    return Table(
        name,
        metadata,
        Column("auto_id", Integer, primary_key=True, autoincrement=True),
        Column("message_id", BigInteger, nullable=False),
        Column("time", Text, nullable=False),
        Column("sender_id", BigInteger, nullable=False),
        Column("sender_name", Text, nullable=False),
        Column("type", Text, nullable=False),
        Column("content", Text, nullable=False),
        Column("interpret", Text, nullable=False),
        # Index names are database-wide, so they carry the table name
        Index(f"ix_{name}_message_id", "message_id"),
        Index(f"ix_{name}_time", "time"),
    )


def log_table(name: str, metadata: MetaData) -> Table:
    return Table(
        name,
        metadata,
        Column("auto_id", Integer, primary_key=True, autoincrement=True),
        Column("time", Text, nullable=False),
        Column("level", Text, nullable=False),
        Column("content", Text, nullable=False),
        Index(f"ix_{name}_time", "time"),
    )


def row_to_segment(row) -> Segment:
    return Segment(
        message_id=row.message_id,
        time=row.time,
        sender_id=row.sender_id,
        sender_name=row.sender_name,
        kind=row.type,
        content=row.content,
        interpretation=row.interpret,
    )
