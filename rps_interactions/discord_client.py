from __future__ import annotations

import base64
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlsplit

import httpx

from rps_interactions.api.models import CommandSpec, MessagePayload
from rps_interactions.config import Settings
from rps_interactions.errors import UpstreamCallFailure

logger = logging.getLogger(__name__)

USER_AGENT = "DiscordBot (https://github.com/rps-interactions/rps-interactions, 0.1.0)"


@dataclass(frozen=True, slots=True)
class Followup:
    """A best-effort outbound call issued after the interaction response is sent."""

    description: str
    action: Callable[[], Awaitable[object]]


class DiscordClient:
    """Thin async wrapper over the platform REST API.

    Every non-2xx response and every transport error is raised as UpstreamCallFailure.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._http = httpx.AsyncClient(
            base_url=settings.api_base,
            headers={
                "Authorization": f"Bot {settings.bot_token}",
                "Content-Type": "application/json; charset=UTF-8",
                "User-Agent": USER_AGENT,
            },
            timeout=10.0,
            transport=transport,
        )
        # Attachments live on a CDN; never send the bot credential there.
        self._cdn = httpx.AsyncClient(timeout=10.0, follow_redirects=True, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()
        await self._cdn.aclose()

    async def request(self, endpoint: str, *, method: str = "GET", json: Any = None) -> httpx.Response:
        try:
            resp = await self._http.request(method, endpoint, json=json)
        except httpx.HTTPError as e:
            raise UpstreamCallFailure(method=method, endpoint=endpoint, status_code=None, body=str(e)) from e

        if resp.is_error:
            raise UpstreamCallFailure(method=method, endpoint=endpoint, status_code=resp.status_code, body=resp.text)
        return resp

    def _webhook_message_endpoint(self, *, token: str, message_id: str) -> str:
        return f"webhooks/{self._settings.app_id}/{token}/messages/{message_id}"

    async def delete_message(self, *, token: str, message_id: str) -> None:
        await self.request(self._webhook_message_endpoint(token=token, message_id=message_id), method="DELETE")

    async def edit_message(self, *, token: str, message_id: str, payload: MessagePayload) -> None:
        await self.request(
            self._webhook_message_endpoint(token=token, message_id=message_id),
            method="PATCH",
            json=payload.model_dump(mode="json", exclude_none=True),
        )

    async def get_guild_commands(self, *, app_id: str, guild_id: str) -> list[dict[str, Any]]:
        resp = await self.request(f"applications/{app_id}/guilds/{guild_id}/commands")
        data = resp.json()
        return data if isinstance(data, list) else []

    async def install_guild_command(self, *, app_id: str, guild_id: str, command: CommandSpec) -> None:
        await self.request(
            f"applications/{app_id}/guilds/{guild_id}/commands",
            method="POST",
            json=command.model_dump(mode="json", exclude_none=True),
        )

    async def modify_guild_icon(self, *, guild_id: str, icon: str) -> None:
        await self.request(f"guilds/{guild_id}", method="PATCH", json={"icon": icon})

    async def fetch_image_data_uri(self, url: str) -> str:
        """Download an image and return it as a `data:` URI suitable for guild icons."""

        try:
            resp = await self._cdn.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise UpstreamCallFailure(method="GET", endpoint=url, status_code=None, body=str(e)) from e
        if resp.is_error:
            raise UpstreamCallFailure(method="GET", endpoint=url, status_code=resp.status_code, body=resp.text)

        content_type = resp.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            content_type = f"image/{image_extension(url)}"
        encoded = base64.b64encode(resp.content).decode("ascii")
        return f"data:{content_type};base64,{encoded}"


def image_extension(url: str) -> str:
    suffix = PurePosixPath(urlsplit(url).path).suffix.lstrip(".").lower()
    if suffix == "jpg":
        return "jpeg"
    return suffix or "png"


async def run_followups(followups: Sequence[Followup]) -> None:
    """Run cleanup calls in order; any failure is logged and the rest still run."""

    for followup in followups:
        try:
            await followup.action()
        except UpstreamCallFailure as e:
            logger.warning("follow-up %r failed: %s", followup.description, e)
        except Exception:
            # Runs after the response is sent; nobody else would see the error.
            logger.exception("follow-up %r crashed", followup.description)
        else:
            logger.debug("follow-up %r done", followup.description)
