"""Outbound calls to a OneBot v11 HTTP endpoint."""
from typing import Any, Optional

import httpx

from .config import OneBotConfig
from .logger import get_logger

logger = get_logger(__name__)


class OneBotError(Exception):
    """The OneBot endpoint answered with a failed status."""


class OneBotClient:
    def __init__(self, config: OneBotConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config
        headers = {}
        if config.access_token:
            headers["Authorization"] = f"Bearer {config.access_token}"
        self.client = client or httpx.AsyncClient(
            base_url=config.api_url, headers=headers, timeout=config.timeout_sec
        )

    async def call(self, action: str, **params: Any) -> Any:
        response = await self.client.post(f"/{action}", json=params)
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise OneBotError(f"{action} returned unexpected body: {body!r}")
        if body.get("status") == "failed" or body.get("retcode", 0) != 0:
            raise OneBotError(f"{action} failed: retcode={body.get('retcode')} {body.get('wording', '')}")
        return body.get("data")

    async def send_group_msg(self, group_id: int, message: list[dict[str, Any]]) -> Optional[int]:
        data = await self.call("send_group_msg", group_id=group_id, message=message)
        return data.get("message_id") if isinstance(data, dict) else None

    async def notify(self, channel_id: int, text: str, image_url: Optional[str] = None) -> None:
        message = [{"type": "text", "data": {"text": text}}]
        if image_url:
            message.append({"type": "image", "data": {"file": image_url}})
        await self.send_group_msg(channel_id, message)

    async def get_member_name(self, group_id: int, user_id: int) -> str:
        """Best-effort display name: known member, group card, nickname, then id."""
        known = self.config.known_members.get(user_id)
        if known:
            return known
        try:
            info = await self.call("get_group_member_info", group_id=group_id, user_id=user_id, no_cache=False)
        except (httpx.HTTPError, OneBotError, ValueError) as e:
            logger.error(f"GroupMemberInfo api request failed.\nCause: {e}")
            return str(user_id)
        if isinstance(info, dict):
            for name in (info.get("card"), info.get("nickname")):
                if name:
                    return str(name)
        return str(user_id)

    async def resolve_media(self, kind: str, file: str) -> str:
        """Local path of a received image or voice record."""
        if kind == "image":
            data = await self.call("get_image", file=file)
        elif kind == "record":
            data = await self.call("get_record", file=file, out_format="mp3")
        else:
            return ""
        return str(data.get("file", "")) if isinstance(data, dict) else ""

    async def close(self) -> None:
        await self.client.aclose()
