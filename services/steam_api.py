"""
HTTP client for the Steam Web API and the demo service.

Every request runs in its own aiohttp session with a finite timeout, so the
client can be used from the bot loop and the webhook server loop alike and
a stalled service never blocks a poll cycle forever.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from errors import ExternalServiceError

NEXT_MATCH_PATH = "/ICSGOPlayers_730/GetNextMatchSharingCode/v1"


class SteamClient:
    """
    Outbound calls used by the poller and the webhook pipeline.

    - next_share_code: ask Steam for the match after a known share code
    - request_demo_download: ask the demo service to fetch a demo
    - request_demo_parsing: ask the demo service to parse a fetched demo
    """

    def __init__(
        self,
        api_key: str,
        steam_base_url: str,
        demo_base_url: str,
        webhook_base_url: str,
        timeout_seconds: float = 30,
    ):
        self.api_key = api_key
        self.steam_base_url = steam_base_url.rstrip("/")
        self.demo_base_url = demo_base_url.rstrip("/")
        self.webhook_base_url = webhook_base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(method, url, params=params, json=json_body) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise ExternalServiceError(
                            f"{method} {url} returned status {response.status}: {body[:200]}"
                        )
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as exc:
                        raise ExternalServiceError(
                            f"{method} {url} returned a non-JSON body"
                        ) from exc
        except aiohttp.ClientError as exc:
            raise ExternalServiceError(f"{method} {url} failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise ExternalServiceError(f"{method} {url} timed out") from exc

        if not isinstance(data, dict):
            raise ExternalServiceError(f"{method} {url} returned an unexpected payload")
        return data

    async def next_share_code(
        self,
        steam_id: str,
        auth_code: str,
        known_code: str,
    ) -> str:
        """
        Get the share code of the match played after `known_code`.

        Returns:
            The next share code, or "n/a" when there is no newer match
        """
        data = await self._request_json(
            "GET",
            f"{self.steam_base_url}{NEXT_MATCH_PATH}",
            params={
                "key": self.api_key,
                "steamid": steam_id,
                "steamidkey": auth_code,
                "knowncode": known_code,
            },
        )
        result = data.get("result") or {}
        if not isinstance(result, dict):
            raise ExternalServiceError(f"unexpected GetNextMatchSharingCode result for {steam_id}")
        return str(result.get("nextcode") or "")

    async def _call_demo_service(self, action: str, share_code: str, callback: str) -> str:
        data = await self._request_json(
            "POST",
            f"{self.demo_base_url}/{action}/{share_code}",
            json_body={"webhook_url": f"{self.webhook_base_url}/webhooks/{callback}"},
        )
        if not data.get("success"):
            raise ExternalServiceError(
                f"demo service {action} failed for {share_code}: {data.get('message', '')}"
            )
        return str(data.get("message", ""))

    async def request_demo_download(self, share_code: str) -> str:
        """Ask the demo service to download a demo; it calls demoReady when done."""
        return await self._call_demo_service("getDemo", share_code, "demoReady")

    async def request_demo_parsing(self, share_code: str) -> str:
        """Ask the demo service to parse a demo; it calls demoParsed when done."""
        return await self._call_demo_service("parseDemo", share_code, "demoParsed")
