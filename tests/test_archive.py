"""Tests for inbound message archiving."""

from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError

from live_agent.archive import ArchivingNotifier, MessageArchiver
from live_agent.schema import InboundMessage, SegmentKind

GROUP = 123
# 2024-01-01 12:00:00 at +08:00
MESSAGE_TIME = 1704081600


def inbound(parts, message_id: int = 5, time=MESSAGE_TIME) -> InboundMessage:
    return InboundMessage(group_id=GROUP, message_id=message_id, sender_id=1001, time=time, parts=parts)


async def test_message_fans_out_into_segments(store, directory):
    archiver = MessageArchiver(store, directory)
    parts = [
        {"type": "reply", "data": {"id": "4"}},
        {"type": "at", "data": {"qq": "1002"}},
        {"type": "text", "data": {"text": "look at this"}},
        {"type": "share", "data": {"url": "https://example.com"}},
        {"type": "video", "data": {"file": "clip.mp4"}},
    ]

    assert await archiver.write_group_msg(inbound(parts)) == 5

    # The whole multi-part message is one recent event
    segments = store.load_recent(GROUP, 1)
    assert [(s.kind, s.content, s.interpretation) for s in segments] == [
        (SegmentKind.REPLY, "4", "message_id"),
        (SegmentKind.AT, "1002", "Bob"),
        (SegmentKind.TEXT, "look at this", "text"),
        (SegmentKind.SHARE, "https://example.com", "url"),
        (SegmentKind.VIDEO, "clip.mp4", "not supported"),
    ]
    assert {s.time for s in segments} == {"2024-01-01 12:00:00"}
    assert {s.sender_name for s in segments} == {"Alice"}
    assert {s.message_id for s in segments} == {5}


async def test_media_is_resolved_when_resolver_present(store, directory):
    media = AsyncMock()
    media.resolve_media.return_value = "https://cdn/abc.png"
    archiver = MessageArchiver(store, directory, media)

    await archiver.write_group_msg(inbound([{"type": "image", "data": {"file": "abc.image"}}]))

    media.resolve_media.assert_awaited_once_with("image", "abc.image")
    [segment] = store.find_by_message_id(GROUP, 5)
    assert segment.content == "abc.image"
    assert segment.interpretation == "https://cdn/abc.png"


async def test_media_resolver_failure_keeps_segment(store, directory):
    media = AsyncMock()
    media.resolve_media.side_effect = RuntimeError("api down")
    archiver = MessageArchiver(store, directory, media)

    await archiver.write_group_msg(inbound([{"type": "record", "data": {"file": "v.amr"}}]))

    [segment] = store.find_by_message_id(GROUP, 5)
    assert segment.content == "v.amr"
    assert segment.interpretation == ""


async def test_message_without_usable_parts_writes_nothing(store, directory):
    archiver = MessageArchiver(store, directory)
    assert await archiver.write_group_msg(inbound([{"type": "face", "data": {"id": "1"}}])) == 0
    assert store.load_recent(GROUP, 10) == []


async def test_invalid_time_drops_message(store, directory):
    archiver = MessageArchiver(store, directory)
    parts = [{"type": "text", "data": {"text": "hi"}}]
    assert await archiver.write_group_msg(inbound(parts, time=-1)) == 0


async def test_missing_time_uses_now(store, directory):
    archiver = MessageArchiver(store, directory)
    await archiver.write_group_msg(inbound([{"type": "text", "data": {"text": "hi"}}], time=None))
    [segment] = store.find_by_message_id(GROUP, 5)
    assert len(segment.time) == len("2024-01-01 12:00:00")


async def test_insert_failure_skips_row(store, directory, mocker):
    original_insert = store.insert
    calls = []

    def flaky_insert(channel_id, segment):
        calls.append(segment)
        if len(calls) == 1:
            raise OperationalError("INSERT", {}, Exception("disk full"))
        return original_insert(channel_id, segment)

    mocker.patch.object(store, "insert", side_effect=flaky_insert)
    archiver = MessageArchiver(store, directory)
    parts = [{"type": "text", "data": {"text": "a"}}, {"type": "text", "data": {"text": "b"}}]

    assert await archiver.write_group_msg(inbound(parts)) == 1
    assert [s.content for s in store.load_recent(GROUP, 1)] == ["b"]


async def test_archiving_notifier_sends_and_stores(store, directory, sink):
    archiver = MessageArchiver(store, directory)
    notifier = ArchivingNotifier(sink, archiver, bot_id=10000)

    await notifier.notify(GROUP, "We are live!", "https://img/cover.jpg")

    assert sink.sent == [(GROUP, "We are live!", "https://img/cover.jpg")]
    stored = store.find_by_message_id(GROUP, 0)
    assert [(s.kind, s.content) for s in stored] == [
        (SegmentKind.TEXT, "We are live!"),
        (SegmentKind.IMAGE, "https://img/cover.jpg"),
    ]
    assert {s.sender_id for s in stored} == {10000}
