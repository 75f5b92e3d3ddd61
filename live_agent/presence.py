"""Edge-triggered live/offline notifications for watched live rooms.

Each room is polled by its own task. A room starts in ``INIT`` after every
process start so that the first observation only records the current state
instead of announcing it.
"""
import asyncio
from enum import Enum
from typing import Iterable, Optional, Protocol

from .archive import NotificationSink
from .bilibili import LiveRoom
from .config import LiveRoomConfig
from .logger import get_logger

# Create logger for this module
logger = get_logger(__name__)


class LivenessSource(Protocol):
    async def query(self, room_id: str) -> LiveRoom: ...


class PresenceState(int, Enum):
    OFF = 0
    ON = 1
    INIT = 2
    TRAP = 3

    @classmethod
    def decode(cls, raw: int) -> "PresenceState":
        """Decode a stored state; anything unknown is TRAP."""
        if raw in (0, 1, 2):
            return cls(raw)
        return cls.TRAP


class Edge(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


def transition(state: PresenceState, is_live: bool) -> tuple[PresenceState, Optional[Edge]]:
    """Next state and the notification edge, if any."""
    if state is PresenceState.TRAP:
        return PresenceState.TRAP, None
    next_state = PresenceState.ON if is_live else PresenceState.OFF
    if state is PresenceState.ON and next_state is PresenceState.OFF:
        return next_state, Edge.OFFLINE
    if state is PresenceState.OFF and next_state is PresenceState.ON:
        return next_state, Edge.ONLINE
    return next_state, None


class PresenceWatcher:
    def __init__(self, room: LiveRoomConfig, source: LivenessSource, sink: NotificationSink) -> None:
        self.room = room
        self.source = source
        self.sink = sink
        self.state = PresenceState.INIT

    async def tick(self) -> Optional[Edge]:
        """Poll once and notify on a transition edge."""
        room_id = self.room.room_id
        if self.state is PresenceState.TRAP:
            logger.error(f"Subscribe live in trap state: room id = {room_id}")
            return None

        try:
            live = await self.source.query(room_id)
        except Exception as e:
            logger.error(f"Query live room {room_id} failed: {e}")
            return None
        if not live.exists:
            logger.error(f"Live room {room_id} does not exist")
            return None

        previous = self.state
        self.state, edge = transition(previous, live.is_live)
        if previous is PresenceState.INIT:
            logger.info(f"Live room {room_id} initial state: {self.state.name}")

        if edge is Edge.OFFLINE:
            logger.info(f"Live room {room_id} not streaming, offline notification")
            await self._notify(self.room.offline_msg)
        elif edge is Edge.ONLINE:
            logger.info(f"Live room {room_id} streaming, online notification")
            text = (
                f"{self.room.online_msg}\n"
                f"Link: {LiveRoom.url_from_id(room_id)}\n"
                f"{live.summary()}"
            )
            await self._notify(text, live.cover_image())
        return edge

    async def _notify(self, text: str, image_url: Optional[str] = None) -> None:
        try:
            await self.sink.notify(self.room.group_id, text, image_url)
        except Exception as e:
            logger.error(f"Send live notification to group {self.room.group_id} failed: {e}")

    async def run(self) -> None:
        """Tick forever at the configured interval."""
        logger.info(f"Watching live room {self.room.room_id} for group {self.room.group_id}")
        while True:
            await self.tick()
            await asyncio.sleep(self.room.poll_interval_sec)


class PresenceMonitor:
    """Owns one independent polling task per watched room."""

    def __init__(self, watchers: Iterable[PresenceWatcher]) -> None:
        self.watchers = list(watchers)
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        if self.running:
            logger.warning("Presence monitor already running")
            return
        self._tasks = [
            asyncio.create_task(watcher.run(), name=f"live-{watcher.room.room_id}")
            for watcher in self.watchers
        ]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Presence monitor stopped")
