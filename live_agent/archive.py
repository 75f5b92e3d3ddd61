"""Inbound message archiving and archived outbound notifications.

Store calls run in a worker thread; the store itself is synchronous.
"""
import asyncio
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from .codec import extract_segments
from .logger import get_logger
from .schema import InboundMessage, MessagePart, Segment, SegmentKind
from .store import SegmentStore
from .timeutil import from_unix, now_str

# Create logger for this module
logger = get_logger(__name__)


class MemberDirectory(Protocol):
    async def get_member_name(self, group_id: int, user_id: int) -> str: ...


class MediaResolver(Protocol):
    async def resolve_media(self, kind: str, file: str) -> str: ...


class NotificationSink(Protocol):
    async def notify(self, channel_id: int, text: str, image_url: Optional[str] = None) -> None: ...


# Fixed interpretations for kinds that need no lookup
STATIC_INTERPRETATIONS = {
    SegmentKind.TEXT: "text",
    SegmentKind.SHARE: "url",
    SegmentKind.VIDEO: "not supported",
    SegmentKind.REPLY: "message_id",
    SegmentKind.CONTACT: "id",
    SegmentKind.FORWARD: "id",
    SegmentKind.NODE: "id",
}


class MessageArchiver:
    def __init__(
        self,
        store: SegmentStore,
        directory: MemberDirectory,
        media: Optional[MediaResolver] = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.media = media

    async def interpret(self, group_id: int, kind: SegmentKind, content: str) -> str:
        """Human readable meaning of a segment, best effort."""
        if kind in STATIC_INTERPRETATIONS:
            return STATIC_INTERPRETATIONS[kind]
        if kind is SegmentKind.AT:
            return await self.directory.get_member_name(group_id, int(content))
        if self.media is None:
            return ""
        try:
            return await self.media.resolve_media(kind.value, content)
        except Exception as e:
            logger.error(f"Resolve {kind.value} {content} failed: {e}")
            return ""

    async def write_group_msg(self, message: InboundMessage) -> int:
        """Persist every segment of a message, one row each.

        Returns the number of rows written. A failing row is logged and the
        remaining rows are still attempted.
        """
        if message.time is None:
            time = now_str(self.store.tz)
        else:
            try:
                time = from_unix(message.time, self.store.tz)
            except ValueError as e:
                logger.error(f"Message {message.message_id} has invalid time: {e}")
                return 0

        segments = extract_segments(message.parts)
        if not segments:
            return 0
        sender_name = await self.directory.get_member_name(message.group_id, message.sender_id)

        written = 0
        for kind, content in segments:
            segment = Segment(
                message_id=message.message_id,
                time=time,
                sender_id=message.sender_id,
                sender_name=sender_name,
                kind=kind,
                content=content,
                interpretation=await self.interpret(message.group_id, kind, content),
            )
            try:
                await asyncio.to_thread(self.store.insert, message.group_id, segment)
            except SQLAlchemyError as e:
                logger.error(f"Write group message failed: {e}")
                continue
            written += 1
        return written


class ArchivingNotifier:
    """Notification sink that sends through the platform and archives what was sent.

    Outbound messages are stored with message id 0 under the bot's own id.
    """

    def __init__(self, sink: NotificationSink, archiver: MessageArchiver, bot_id: int) -> None:
        self.sink = sink
        self.archiver = archiver
        self.bot_id = bot_id

    async def notify(self, channel_id: int, text: str, image_url: Optional[str] = None) -> None:
        await self.sink.notify(channel_id, text, image_url)
        parts = [MessagePart(kind="text", data={"text": text})]
        if image_url:
            parts.append(MessagePart(kind="image", data={"file": image_url}))
        await self.archiver.write_group_msg(
            InboundMessage(group_id=channel_id, message_id=0, sender_id=self.bot_id, parts=parts)
        )
