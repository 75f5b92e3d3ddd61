"""Tests for notice decoding."""

from live_agent.notice import (
    GroupAdmin,
    GroupAdminSubType,
    GroupBan,
    GroupRecall,
    Honor,
    HonorType,
    Poke,
    parse_notice,
)


def test_parse_group_recall():
    notice = parse_notice(
        {
            "post_type": "notice",
            "notice_type": "group_recall",
            "time": 1627847284,
            "self_id": 123456789,
            "group_id": 987654321,
            "user_id": 1122334455,
            "operator_id": 1122334455,
            "message_id": -2147483000,
        }
    )
    assert isinstance(notice, GroupRecall)
    assert notice.message_id == -2147483000


def test_parse_notify_honor():
    notice = parse_notice(
        {
            "notice_type": "notify",
            "sub_type": "honor",
            "time": 1627847284,
            "self_id": 123456789,
            "group_id": 987654321,
            "honor_type": "talkative",
            "post_type": "notice",
            "user_id": 1122334455,
        }
    )
    assert isinstance(notice, Honor)
    assert notice.honor_type is HonorType.TALKATIVE


def test_parse_notify_poke():
    notice = parse_notice(
        {
            "notice_type": "notify",
            "sub_type": "poke",
            "time": 1,
            "self_id": 2,
            "group_id": 3,
            "user_id": 4,
            "target_id": 2,
        }
    )
    assert isinstance(notice, Poke)


def test_parse_admin():
    notice = parse_notice(
        {
            "notice_type": "group_admin",
            "sub_type": "set",
            "time": 1234,
            "self_id": 5678,
            "group_id": 91011,
            "post_type": "notice",
            "user_id": 1122334455,
        }
    )
    assert notice == GroupAdmin(
        notice_type="group_admin",
        time=1234,
        self_id=5678,
        group_id=91011,
        user_id=1122334455,
        sub_type=GroupAdminSubType.SET,
    )


def test_parse_ban():
    notice = parse_notice(
        {
            "notice_type": "group_ban",
            "sub_type": "lift_ban",
            "time": 1,
            "self_id": 2,
            "group_id": 3,
            "operator_id": 4,
            "user_id": 5,
            "duration": 0,
        }
    )
    assert isinstance(notice, GroupBan)


def test_undecodable_notices_are_dropped(caplog):
    assert parse_notice({"notice_type": "group_recall", "group_id": 1}) is None
    assert parse_notice({"notice_type": "essence", "time": 1}) is None
    assert parse_notice({"notice_type": "notify", "sub_type": "lucky_king"}) is None
    assert parse_notice({}) is None
    assert "Notice deserialize failed" in caplog.text
