"""Live agent - persistent group message segment store and live room notifications."""

from importlib import metadata

__version__ = "0.1.0"
__license__ = "MIT"

try:
    __version__ = metadata.version(__package__ or __name__)
except metadata.PackageNotFoundError:
    # Package is not installed
    pass

from .config import Settings, DatabaseConfig, OneBotConfig, LiveRoomConfig, LogConfig
from .logger import setup_logging, get_logger, LogSink
from .schema import Segment, SegmentKind
from .store import SegmentStore
from .presence import PresenceState, PresenceWatcher, PresenceMonitor
from .recall import RecallReconciler
from .bot import LiveAgentBot

__all__ = [
    "Settings",
    "DatabaseConfig",
    "OneBotConfig",
    "LiveRoomConfig",
    "LogConfig",
    "setup_logging",
    "get_logger",
    "LogSink",
    "Segment",
    "SegmentKind",
    "SegmentStore",
    "PresenceState",
    "PresenceWatcher",
    "PresenceMonitor",
    "RecallReconciler",
    "LiveAgentBot",
]
