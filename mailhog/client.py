from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from shared.config import settings
from .exceptions import HttpStatusError, MalformedResponse, TransportError
from .models import ListMessagesParams, MessageList, SearchParams

logger = logging.getLogger(__name__)

APPLICATION_JSON = "application/json"
MESSAGES_PATH = "/api/v2/messages"
SEARCH_PATH = "/api/v2/search"


class MailHogClient:
    """
    Read-only client for the MailHog v2 HTTP API.

    A single `httpx.AsyncClient` is reused for every call. The client holds no
    other state, so `list_messages` and `search` may run concurrently.

    Usage:
        async with MailHogClient("http://localhost:8025") as mh:
            page = await mh.list_messages()

    Errors are never retried here:
    - TransportError: no response (connection refused, DNS, timeout)
    - HttpStatusError: non-2xx response, carries `status_code`
    - MalformedResponse: body is not a decodable MessageList
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": APPLICATION_JSON},
            timeout=timeout if timeout is not None else settings.MAILHOG_HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "MailHogClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_messages(self, params: Optional[ListMessagesParams] = None) -> MessageList:
        """Fetches one page of captured messages, in the order the server returns them."""
        params = params or ListMessagesParams()
        return await self._get_message_list(MESSAGES_PATH, params.to_query())

    async def search(self, params: SearchParams) -> MessageList:
        """Fetches one page of messages matching `params.kind` / `params.query`."""
        return await self._get_message_list(SEARCH_PATH, params.to_query())

    async def _get_message_list(self, path: str, query: Dict[str, str]) -> MessageList:
        logger.debug(f"GET {self.base_url}{path} params={query}")
        try:
            response = await self._client.get(path, params=query)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            url = str(e.request.url)
            logger.error(f"MailHog returned HTTP {status_code} for {url}")
            raise HttpStatusError(status_code, url) from e
        except httpx.RequestError as e:
            logger.error(f"Request to MailHog at {self.base_url}{path} failed: {e!r}")
            raise TransportError(f"Request to {self.base_url}{path} failed: {e}") from e

        return _decode_message_list(response)


def _decode_message_list(response: httpx.Response) -> MessageList:
    try:
        payload: Any = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"MailHog response from {response.request.url} is not JSON: {e}")
        raise MalformedResponse(f"Response body is not valid JSON: {e}") from e

    try:
        return MessageList.model_validate(payload)
    except ValidationError as e:
        logger.error(f"MailHog response from {response.request.url} does not match MessageList: {e}")
        raise MalformedResponse(f"Response body is not a MessageList: {e}") from e
