"""Thin async client for the SBWSZ card database API.

Every method returns a ready-made ``CallToolResult``: JSON endpoints are passed
through as pretty-printed text, the ``hzls`` endpoint as an image.
"""

import base64
import json
import logging
from typing import Any
from urllib.parse import quote

import httpx
from mcp.types import CallToolResult, ImageContent, TextContent

from sbwsz_mcp.config import DEFAULT_API_URL

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"


def text_result(text: str, is_error: bool = False) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


def _query(**params: Any) -> dict[str, Any]:
    # Absent optionals are left out so the API applies its own defaults.
    return {key: value for key, value in params.items() if value is not None}


def json_result(response: httpx.Response) -> CallToolResult:
    if not response.is_success:
        message = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message")
        if message:
            return text_result(
                f"SBWSZ API error: {message} (status: {response.status_code})", is_error=True
            )
        return text_result(
            f"HTTP error {response.status_code}: {response.reason_phrase}", is_error=True
        )

    data = response.json()
    return text_result(json.dumps(data, indent=2, ensure_ascii=False))


class SbwszClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        if http_client is None:
            kwargs: dict[str, Any] = {"follow_redirects": True}
            if timeout is not None:
                kwargs["timeout"] = timeout
            http_client = httpx.AsyncClient(**kwargs)
        self._http = http_client

    async def __aenter__(self) -> "SbwszClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def url(self, *segments: Any) -> str:
        return "/".join([self.base_url, *(_segment(s) for s in segments)])

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> CallToolResult:
        logger.debug("GET %s params=%s", url, params)
        response = await self._http.get(url, params=params or None)
        return json_result(response)

    async def get_card(self, set_code: str, collector_number: str) -> CallToolResult:
        return await self._get_json(self.url("card", set_code.upper(), collector_number))

    async def search_cards(
        self,
        q: str,
        page: int | None = None,
        page_size: int | None = None,
        order: str | None = None,
        unique: str | None = None,
        priority_chinese: bool | None = None,
    ) -> CallToolResult:
        params = _query(
            q=q,
            page=page,
            page_size=page_size,
            order=order,
            unique=unique,
            priority_chinese=priority_chinese,
        )
        return await self._get_json(self.url("result"), params)

    async def get_sets(self) -> CallToolResult:
        return await self._get_json(self.url("sets"))

    async def get_set(self, set_code: str) -> CallToolResult:
        return await self._get_json(self.url("set", set_code.upper()))

    async def get_set_cards(
        self,
        set_code: str,
        page: int | None = None,
        page_size: int | None = None,
        order: str | None = None,
        priority_chinese: bool | None = None,
    ) -> CallToolResult:
        params = _query(
            page=page, page_size=page_size, order=order, priority_chinese=priority_chinese
        )
        return await self._get_json(self.url("set", set_code.upper(), "cards"), params)

    async def composite_image(self, target_sentence: str) -> CallToolResult:
        request_url = str(httpx.URL(self.url("hzls"), params={"target_sentence": target_sentence}))
        logger.debug("GET %s", request_url)
        try:
            async with self._http.stream("GET", request_url) as response:
                if not response.is_success:
                    try:
                        await response.aread()
                        detail = response.text
                    except httpx.HTTPError:
                        detail = ""
                    return text_result(
                        f"Image generation failed (status: {response.status_code}): {detail}",
                        is_error=True,
                    )
                payload = await response.aread()
                mime_type = response.headers.get("content-type") or DEFAULT_IMAGE_MIME
        except httpx.HTTPError as exc:
            logger.warning("hzls request to %s failed: %s", request_url, exc)
            return text_result(
                f"Image request failed: {exc}. Request URL: {request_url}", is_error=True
            )

        return CallToolResult(
            content=[
                TextContent(type="text", text=f"Generated image for: {target_sentence}"),
                ImageContent(
                    type="image",
                    data=base64.b64encode(payload).decode("ascii"),
                    mimeType=mime_type.split(";")[0].strip() or DEFAULT_IMAGE_MIME,
                ),
            ],
            isError=False,
        )
