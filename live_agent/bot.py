import asyncio
import time
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from .archive import ArchivingNotifier, MessageArchiver
from .bilibili import BilibiliLiveClient
from .config import Settings
from .logger import LogSink, attach_database_handler, get_logger, setup_logging
from .notice import GroupRecall, parse_notice
from .onebot import OneBotClient
from .presence import PresenceMonitor, PresenceWatcher
from .recall import RecallReconciler
from .schema import InboundMessage
from .store import SegmentStore

# Create logger for this module
logger = get_logger(__name__)


class LiveAgentBot:
    """Composition root: builds every component from settings and routes events."""

    def __init__(
        self,
        settings: Settings,
        store: Optional[SegmentStore] = None,
        onebot: Optional[OneBotClient] = None,
        live_client: Optional[BilibiliLiveClient] = None,
    ) -> None:
        self.settings: Settings = settings
        self.store = store or SegmentStore.from_config(settings.database, settings.utc_offset_hours)
        self.store.ensure_log_table()
        self.log_sink = LogSink(self.store)

        self.onebot = onebot or OneBotClient(settings.onebot)
        self.live_client = live_client or BilibiliLiveClient()

        bot_id = settings.onebot.bot_id
        self.archiver = MessageArchiver(self.store, self.onebot, self.onebot)
        self.notifier = ArchivingNotifier(self.onebot, self.archiver, bot_id)
        self.reconciler = RecallReconciler(self.store, self.onebot, bot_id)
        self.monitor = PresenceMonitor(
            PresenceWatcher(room, self.live_client, self.notifier)
            for room in settings.live_rooms
        )

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Route one OneBot event payload."""
        post_type = event.get("post_type")
        if post_type == "message" and event.get("message_type") == "group":
            await self.handle_group_message(event)
        elif post_type == "notice":
            await self.handle_notice(event)

    async def handle_group_message(self, event: dict[str, Any]) -> None:
        parts = event.get("message") or []
        # Plain string messages carry no segment structure
        if isinstance(parts, str):
            parts = [{"type": "text", "data": {"text": parts}}]
        try:
            message = InboundMessage(
                group_id=event["group_id"],
                message_id=event["message_id"],
                sender_id=event.get("user_id") or event["sender"]["user_id"],
                time=event.get("time"),
                parts=parts,
            )
        except (KeyError, TypeError, ValidationError) as e:
            logger.error(f"Group message event cannot be decoded: {e}\nraw: {event}")
            return
        await self.archiver.write_group_msg(message)

    async def handle_notice(self, event: dict[str, Any]) -> None:
        notice = parse_notice(event)
        if notice is None:
            return
        if isinstance(notice, GroupRecall):
            await self.reconciler.handle_recall(notice)
        else:
            logger.debug(f"Ignore notice {type(notice).__name__}")

    def export_history(self, group_id: int, n: int) -> Path:
        """Dump the last n message events of a group to a CSV file under data_dir.

        The caller owns uploading and deleting the file.
        """
        filename = f"{group_id}-{int(time.time())}.csv"
        return self.store.export_history_csv(group_id, n, Path(self.settings.data_dir) / filename)

    def export_logs(self, n: int) -> Path:
        filename = f"log-{int(time.time())}.csv"
        return self.store.export_log_csv(n, Path(self.settings.data_dir) / filename)

    async def start(self) -> None:
        self.monitor.start()
        self.log_sink.write("INFO", "Live agent started.")

    async def close(self) -> None:
        await self.monitor.stop()
        await self.live_client.close()
        await self.onebot.close()
        self.store.dispose()

    async def run(self) -> None:
        """Main run loop"""
        await self.start()
        # Events are pushed in through handle_event by the embedding adapter
        await asyncio.Event().wait()


async def main() -> None:
    settings: Settings = Settings()

    # Set up logging before creating the bot
    setup_logging(settings)
    logger.info("Starting live agent")

    bot: LiveAgentBot = LiveAgentBot(settings)
    attach_database_handler(bot.log_sink, settings.logging.db_level)
    try:
        await bot.run()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        await bot.close()


if __name__ == "__main__":
    asyncio.run(main())
