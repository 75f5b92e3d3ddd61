"""Common test fixtures for live agent tests."""

from pathlib import Path
from typing import Optional

import pytest

from live_agent.config import Settings
from live_agent.schema import Segment, SegmentKind
from live_agent.store import SegmentStore


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test files."""
    return tmp_path


@pytest.fixture
def test_settings(temp_dir: Path, monkeypatch) -> Settings:
    """Create test settings backed by a temporary SQLite database."""
    for key, value in {
        "DATABASE_TYPE": "sqlite",
        "SQLITE_DB": str(temp_dir / "store.db"),
        "GROUP_TABLE_PREFIX": "message",
        "LOG_TABLE_NAME": "bot_log",
        "ONEBOT__BOT_ID": "10000",
        "LIVE_ROOMS": '[{"group_id": 123, "room_id": "456", "poll_interval_sec": 0.01}]',
    }.items():
        monkeypatch.setenv(key, value)

    settings = Settings()
    settings.logging.file_path = str(temp_dir / "test.log")
    settings.data_dir = str(temp_dir / "data")
    return settings


@pytest.fixture
def store(test_settings: Settings):
    """A segment store on a fresh SQLite file."""
    store = SegmentStore.from_config(test_settings.database, test_settings.utc_offset_hours)
    store.ensure_log_table()
    yield store
    store.dispose()


class FakeDirectory:
    """Member directory answering from a fixed mapping."""

    def __init__(self, names: Optional[dict[int, str]] = None) -> None:
        self.names = names or {}

    async def get_member_name(self, group_id: int, user_id: int) -> str:
        return self.names.get(user_id, str(user_id))


class RecordingSink:
    """Notification sink that remembers every call."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str, Optional[str]]] = []

    async def notify(self, channel_id: int, text: str, image_url: Optional[str] = None) -> None:
        self.sent.append((channel_id, text, image_url))


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory({1001: "Alice", 1002: "Bob"})


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


def make_segment(
    message_id: int = 1,
    time: str = "2024-01-01 12:00:00",
    kind: SegmentKind = SegmentKind.TEXT,
    content: str = "hello",
    sender_id: int = 1001,
) -> Segment:
    return Segment(
        message_id=message_id,
        time=time,
        sender_id=sender_id,
        sender_name="Alice",
        kind=kind,
        content=content,
        interpretation="text",
    )
