"""Reconcile retracted group messages against the append-only store."""
import asyncio

from sqlalchemy.exc import SQLAlchemyError

from .archive import MemberDirectory
from .logger import get_logger
from .notice import GroupRecall
from .schema import RECALL_INDICATOR, Segment, SegmentKind
from .store import SegmentStore
from .timeutil import from_unix

# Create logger for this module
logger = get_logger(__name__)


class RecallReconciler:
    """Record a retraction as a tombstone followed by a replay of the originals.

    Nothing is deleted: the recalled content stays in history and the
    tombstone marks where the retraction happened.
    """

    def __init__(self, store: SegmentStore, directory: MemberDirectory, bot_id: int) -> None:
        self.store = store
        self.directory = directory
        self.bot_id = bot_id

    async def handle_recall(self, notice: GroupRecall) -> int:
        """Returns the number of rows appended."""
        group_id = notice.group_id
        message_id = notice.message_id
        try:
            segments = await asyncio.to_thread(self.store.find_by_message_id, group_id, message_id)
        except SQLAlchemyError as e:
            logger.error(f"Find segment by id failed: {e}")
            return 0
        if not segments:
            logger.warning(f"Recalled message not found.\ngroup_id={group_id}, msg_id={message_id}")
            return 0

        try:
            time = from_unix(notice.time, self.store.tz)
        except ValueError as e:
            logger.error(f"Recall notice timestamp error, value = {notice.time}: {e}")
            return 0

        user_name = await self.directory.get_member_name(group_id, notice.user_id)
        op_name = await self.directory.get_member_name(group_id, notice.operator_id)
        tombstone = Segment(
            message_id=0,
            time=time,
            sender_id=self.bot_id,
            sender_name=RECALL_INDICATOR,
            kind=SegmentKind.TEXT,
            content=f"{op_name} recalled {user_name}'s message, id={message_id}",
            interpretation=RECALL_INDICATOR,
        )

        written = 0
        for segment in [tombstone, *segments]:
            try:
                await asyncio.to_thread(self.store.insert, group_id, segment)
            except SQLAlchemyError as e:
                logger.error(f"Store segment failed: {e}\nContent: {segment!r}")
                continue
            written += 1
        logger.info(f"Recorded recall of message {message_id} in group {group_id}")
        return written
