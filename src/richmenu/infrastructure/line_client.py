"""LINE Messaging API rich menu adapter."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from src.richmenu.domain.exceptions import LineAPIError
from src.richmenu.domain.value_objects import ImagePayload
from src.shared.config import get_settings
from src.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "https://api.line.me/v2/bot"
DEFAULT_DATA_API_BASE_URL = "https://api-data.line.me/v2/bot"


class LineMessagingClient:
    """
    Rich menu endpoints of the LINE Messaging API, bound to one channel
    access token.

    Use as an async context manager so the underlying connection pool is
    closed after the publish:

        async with LineMessagingClient(token) as line:
            rich_menu_id = await line.create_rich_menu(payload)

    Every non-2xx response raises LineAPIError carrying the raw status and
    response text. Transport failures (timeouts, DNS, resets) raise
    LineAPIError with no status.
    """

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        data_base_url: str = DEFAULT_DATA_API_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.data_base_url = data_base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    async def __aenter__(self) -> "LineMessagingClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("LINE API transport error", operation=operation, error=str(e))
            raise LineAPIError(operation, None, str(e) or e.__class__.__name__) from e

        if response.is_success:
            return response

        logger.warning(
            "LINE API call failed",
            operation=operation,
            status_code=response.status_code,
            body=response.text[:500],
        )
        raise LineAPIError(operation, response.status_code, response.text)

    @staticmethod
    def _json_object(operation: str, response: httpx.Response) -> Dict[str, Any]:
        """Decoded 2xx body; anything but a JSON object is an upstream error."""
        try:
            body = response.json()
        except ValueError as e:
            raise LineAPIError(operation, response.status_code, f"Response is not JSON: {response.text[:200]}") from e
        if not isinstance(body, dict):
            raise LineAPIError(operation, response.status_code, "Response is not a JSON object")
        return body

    def _json_list(self, operation: str, response: httpx.Response, key: str) -> List[Dict[str, Any]]:
        items = self._json_object(operation, response).get(key) or []
        if not isinstance(items, list):
            raise LineAPIError(operation, response.status_code, f"Response field {key!r} is not a list")
        return [item for item in items if isinstance(item, dict)]

    # ---------- rich menus ----------

    async def list_rich_menus(self) -> List[Dict[str, Any]]:
        response = await self._request("list_rich_menus", "GET", f"{self.base_url}/richmenu/list")
        return self._json_list("list_rich_menus", response, "richmenus")

    async def delete_rich_menu(self, rich_menu_id: str) -> None:
        await self._request("delete_rich_menu", "DELETE", f"{self.base_url}/richmenu/{rich_menu_id}")

    async def create_rich_menu(self, payload: Dict[str, Any]) -> str:
        response = await self._request("create_rich_menu", "POST", f"{self.base_url}/richmenu", json=payload)
        rich_menu_id = self._json_object("create_rich_menu", response).get("richMenuId")
        if not rich_menu_id:
            raise LineAPIError("create_rich_menu", response.status_code, "Response has no richMenuId")
        return rich_menu_id

    async def upload_rich_menu_image(self, rich_menu_id: str, image: ImagePayload) -> None:
        await self._request(
            "upload_rich_menu_image",
            "POST",
            f"{self.data_base_url}/richmenu/{rich_menu_id}/content",
            content=image.data,
            headers={"Content-Type": image.content_type},
        )

    # ---------- aliases ----------

    async def update_rich_menu_alias(self, alias_id: str, rich_menu_id: str) -> None:
        await self._request(
            "update_rich_menu_alias",
            "PUT",
            f"{self.base_url}/richmenu/alias/{alias_id}",
            json={"richMenuId": rich_menu_id},
        )

    async def create_rich_menu_alias(self, alias_id: str, rich_menu_id: str) -> None:
        await self._request(
            "create_rich_menu_alias",
            "POST",
            f"{self.base_url}/richmenu/alias",
            json={"richMenuAliasId": alias_id, "richMenuId": rich_menu_id},
        )

    async def list_rich_menu_aliases(self) -> List[Dict[str, Any]]:
        response = await self._request("list_rich_menu_aliases", "GET", f"{self.base_url}/richmenu/alias/list")
        return self._json_list("list_rich_menu_aliases", response, "aliases")

    async def delete_rich_menu_alias(self, alias_id: str) -> None:
        await self._request("delete_rich_menu_alias", "DELETE", f"{self.base_url}/richmenu/alias/{alias_id}")

    # ---------- default menu ----------

    async def set_default_rich_menu(self, rich_menu_id: str) -> None:
        await self._request("set_default_rich_menu", "POST", f"{self.base_url}/user/all/richmenu/{rich_menu_id}")

    async def unset_default_rich_menu(self) -> None:
        await self._request("unset_default_rich_menu", "DELETE", f"{self.base_url}/user/all/richmenu")


def line_client_factory(access_token: str) -> LineMessagingClient:
    """LineGatewayFactory wired from settings."""
    settings = get_settings()
    return LineMessagingClient(
        access_token,
        base_url=settings.line_api_base_url,
        data_base_url=settings.line_data_api_base_url,
        timeout=settings.line_http_timeout_seconds,
    )
