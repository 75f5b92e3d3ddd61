"""Bilibili live room status client."""
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

ROOM_INFO_URL = "https://api.live.bilibili.com/room/v1/Room/get_info"


class LiveData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_streaming: bool = Field(default=False, alias="live_status")
    online: int = 0
    attention: int = 0
    keyframe: str = ""
    user_cover: str = ""
    area_name: str = ""
    description: str = ""
    title: str = ""

    @field_validator("is_streaming", mode="before")
    @classmethod
    def parse_status(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        # 1 is streaming; 0 offline, 2 replaying
        return value == 1


class LiveRoom(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exists: bool = Field(alias="code")
    data: LiveData = LiveData()

    @field_validator("exists", mode="before")
    @classmethod
    def parse_code(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return value == 0

    @field_validator("data", mode="before")
    @classmethod
    def parse_data(cls, value: Any) -> Any:
        # Unknown rooms answer with an empty list instead of an object
        return value if isinstance(value, (dict, LiveData)) else {}

    @property
    def is_live(self) -> bool:
        return self.exists and self.data.is_streaming

    @staticmethod
    def url_from_id(room_id: str) -> str:
        return f"https://live.bilibili.com/{room_id}"

    def cover_image(self) -> Optional[str]:
        """Keyframe if available, otherwise the user cover."""
        for image in (self.data.keyframe, self.data.user_cover):
            if image:
                return image
        return None

    def summary(self) -> str:
        return (
            f"Area: {self.data.area_name}\n"
            f"Title: {self.data.title}\n"
            f"Description: {self.data.description}\n"
            f"Popularity: {self.data.online}, Followers: {self.data.attention}"
        )


class BilibiliLiveClient:
    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0) -> None:
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def query(self, room_id: str) -> LiveRoom:
        """Fetch the room status. Raises httpx.HTTPError or ValidationError."""
        response = await self.client.get(ROOM_INFO_URL, params={"room_id": room_id})
        response.raise_for_status()
        return LiveRoom.model_validate(response.json())

    async def close(self) -> None:
        await self.client.aclose()
