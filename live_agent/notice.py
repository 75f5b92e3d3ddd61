"""Typed group notices decoded from OneBot notice events."""
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .logger import get_logger

logger = get_logger(__name__)


class GroupAdminSubType(str, Enum):
    SET = "set"
    UNSET = "unset"


class GroupDecreaseSubType(str, Enum):
    LEAVE = "leave"
    KICK = "kick"
    KICK_ME = "kick_me"


class GroupIncreaseSubType(str, Enum):
    APPROVE = "approve"
    INVITE = "invite"


class GroupBanSubType(str, Enum):
    BAN = "ban"
    LIFT_BAN = "lift_ban"


class HonorType(str, Enum):
    TALKATIVE = "talkative"
    PERFORMER = "performer"
    EMOTION = "emotion"


class GroupUpload(BaseModel):
    notice_type: Literal["group_upload"]
    time: int
    self_id: int
    group_id: int
    user_id: int


class GroupAdmin(BaseModel):
    notice_type: Literal["group_admin"]
    time: int
    self_id: int
    sub_type: GroupAdminSubType
    group_id: int
    user_id: int


class GroupDecrease(BaseModel):
    notice_type: Literal["group_decrease"]
    time: int
    self_id: int
    sub_type: GroupDecreaseSubType
    group_id: int
    operator_id: int
    user_id: int


class GroupIncrease(BaseModel):
    notice_type: Literal["group_increase"]
    time: int
    self_id: int
    sub_type: GroupIncreaseSubType
    group_id: int
    operator_id: int
    user_id: int


class GroupBan(BaseModel):
    notice_type: Literal["group_ban"]
    time: int
    self_id: int
    sub_type: GroupBanSubType
    group_id: int
    operator_id: int
    user_id: int
    duration: int


class FriendAdd(BaseModel):
    notice_type: Literal["friend_add"]
    time: int
    self_id: int
    user_id: int


class GroupRecall(BaseModel):
    """A group message was retracted by `operator_id`."""

    notice_type: Literal["group_recall"]
    time: int
    self_id: int
    group_id: int
    user_id: int
    operator_id: int
    message_id: int


class Poke(BaseModel):
    notice_type: Literal["notify"]
    sub_type: Literal["poke"]
    time: int
    self_id: int
    group_id: int
    user_id: int
    target_id: int


class Honor(BaseModel):
    notice_type: Literal["notify"]
    sub_type: Literal["honor"]
    time: int
    self_id: int
    group_id: int
    honor_type: HonorType
    user_id: int


Notify = Annotated[Union[Poke, Honor], Field(discriminator="sub_type")]

Notice = Union[
    GroupUpload,
    GroupAdmin,
    GroupDecrease,
    GroupIncrease,
    GroupBan,
    FriendAdd,
    GroupRecall,
    Poke,
    Honor,
]

_DIRECT = TypeAdapter(
    Annotated[
        Union[GroupUpload, GroupAdmin, GroupDecrease, GroupIncrease, GroupBan, FriendAdd, GroupRecall],
        Field(discriminator="notice_type"),
    ]
)
_NOTIFY = TypeAdapter(Notify)


def parse_notice(payload: dict[str, Any]) -> Optional[Notice]:
    """Decode a raw notice event; undecodable payloads are logged and dropped."""
    try:
        if payload.get("notice_type") == "notify":
            return _NOTIFY.validate_python(payload)
        return _DIRECT.validate_python(payload)
    except ValidationError as e:
        logger.error(f"Notice deserialize failed, skip group interact\ncause: {e}\nraw: {payload}")
        return None
