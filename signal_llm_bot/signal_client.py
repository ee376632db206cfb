"""Signal REST gateway client."""

import base64
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import httpx

from .config import SignalConfig
from .errors import DecodeError, FileError, NotFoundError, TransportError
from .events import envelopes_from_payload

logger = logging.getLogger(__name__)

RECEIVE_TIMEOUT = 15.0
GROUPS_TIMEOUT = 10.0
SEND_TIMEOUT = 10.0
SEND_FILE_TIMEOUT = 60.0


@dataclass
class QuoteRequest:
    """Quote to attach to an outgoing message."""

    id: int
    author: str
    text: str


class SignalClient:
    """Wrapper around the signal-cli REST API for bot operations."""

    def __init__(self, config: SignalConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self.number = config.number
        self.client = client or httpx.AsyncClient(
            base_url=config.api_url.rstrip("/"),
            headers={"Content-Type": "application/json"},
        )

    async def _request(self, method: str, path: str, timeout: float, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, path, timeout=timeout, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"{method} {path} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"failed to decode response: {e}") from e

    async def receive_events(self) -> list[dict]:
        """Fetch new envelopes for the bot's number.

        Returns:
            Raw envelope mappings in the order the gateway returned them.

        Raises:
            TransportError: On network failure or non-2xx status.
            DecodeError: If the body is not valid JSON.
        """
        logger.debug("Fetching events for %s", self.number)
        response = await self._request("GET", f"/v1/receive/{self.number}", RECEIVE_TIMEOUT)

        if not response.content.strip():
            return []

        events = envelopes_from_payload(self._decode(response))
        if events:
            logger.debug("Received %d event(s) for %s", len(events), self.number)
        return events

    async def get_group_public_id(self, internal_id: str) -> str:
        """Resolve an internal group id to the public id used for sending.

        Raises:
            TransportError: On network failure or non-2xx status.
            DecodeError: If the body is not valid JSON.
            NotFoundError: If no group matches.
        """
        logger.debug("Looking up public group ID for internal ID: %s", internal_id)
        response = await self._request("GET", f"/v1/groups/{self.number}", GROUPS_TIMEOUT)
        groups = self._decode(response)

        for group in groups if isinstance(groups, list) else []:
            if not isinstance(group, dict):
                continue
            if group.get("internal_id") == internal_id and group.get("id"):
                return group["id"]

        raise NotFoundError(f"public group id not found for internal id: {internal_id}")

    async def send_message(self, to: str, text: str, quote: Optional[QuoteRequest] = None) -> None:
        """Send a text message to a recipient (number, uuid or public group id).

        Raises:
            TransportError: On network failure or non-2xx status.
        """
        payload: dict[str, Any] = {
            "message": text,
            "number": self.number,
            "recipients": [to],
        }
        if quote is not None:
            payload["quote_timestamp"] = quote.id
            payload["quote_author"] = quote.author
            payload["quote_message"] = quote.text

        logger.debug("Sending message to %s: %s", to, text[:50])
        await self._request("POST", "/v2/send", SEND_TIMEOUT, json=payload)

    async def send_file(self, to: str, path: str | Path, caption: str = "") -> None:
        """Send a file as a base64 attachment.

        Raises:
            FileError: If the file cannot be read.
            TransportError: On network failure or non-2xx status.
        """
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise FileError(f"failed to read file {path}: {e}") from e

        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        encoded = base64.b64encode(content).decode("ascii")
        payload: dict[str, Any] = {
            "number": self.number,
            "recipients": [to],
            "base64_attachments": [f"data:{mime_type};filename={path.name};base64,{encoded}"],
        }
        if caption:
            payload["message"] = caption

        logger.debug("Sending file %s to %s", path, to)
        await self._request("POST", "/v2/send", SEND_FILE_TIMEOUT, json=payload)

    async def close(self) -> None:
        await self.client.aclose()
