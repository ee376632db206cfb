"""Inbound event schema for the Signal REST gateway.

Every field is optional. Payloads are decoded leniently: fields that fail
validation are pruned and validation is retried, so decoding never raises.
"""

import copy
import hashlib
import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Mention(_Schema):
    """Positional @-mention inside a message body.

    Offsets are code point offsets into the raw message text.
    """

    start: int = 0
    length: int = 0
    number: str = ""
    uuid: str = ""


class Quote(_Schema):
    """Reference to an earlier message being replied to."""

    id: int = 0
    author: str = ""
    author_uuid: str = Field(default="", alias="authorUuid")
    text: str = ""


class GroupInfo(_Schema):
    group_id: str = Field(default="", alias="groupId")


class DataMessage(_Schema):
    message: str | None = None
    mentions: list[Mention] = Field(default_factory=list)
    group_info: GroupInfo | None = Field(default=None, alias="groupInfo")
    quote: Quote | None = None


class Envelope(_Schema):
    """One inbound delivery unit; may or may not carry a data message."""

    source: str = ""
    source_number: str = Field(default="", alias="sourceNumber")
    source_uuid: str = Field(default="", alias="sourceUuid")
    timestamp: int = 0
    data_message: DataMessage | None = Field(default=None, alias="dataMessage")
    # Alternate event shapes carry the body at the top level
    message: str | None = None
    text: str | None = None


def _prune_target(data: Any, loc: tuple) -> tuple | None:
    """Resolve an error location to the path that should be removed.

    List items are dropped as a whole, so the path stops at the first list
    index. Returns None if the location does not exist in the data.
    """
    node = data
    for i, key in enumerate(loc):
        if isinstance(node, list) and isinstance(key, int) and 0 <= key < len(node):
            return tuple(loc[: i + 1])
        if isinstance(node, dict) and key in node:
            child = node[key]
            if i == len(loc) - 1 or not isinstance(child, (dict, list)):
                return tuple(loc[: i + 1])
            node = child
            continue
        return None
    return None


def _remove(data: Any, path: tuple) -> None:
    node = data
    for key in path[:-1]:
        node = node[key]
    del node[path[-1]]


def decode_envelope(raw: Any) -> Envelope:
    """Decode a raw event into an Envelope, never raising.

    Accepts an Envelope, a bare envelope mapping, or an ``{"envelope": ...}``
    wrapper as returned by the receive endpoint.
    """
    if isinstance(raw, Envelope):
        return raw
    if not isinstance(raw, Mapping):
        logger.debug("Ignoring non-mapping event payload: %r", type(raw).__name__)
        return Envelope()

    inner = raw.get("envelope")
    data = copy.deepcopy(dict(inner if isinstance(inner, Mapping) else raw))

    while True:
        try:
            return Envelope.model_validate(data)
        except ValidationError as e:
            errors = e.errors()

        targets = {}
        for error in errors:
            path = _prune_target(data, tuple(error.get("loc", ())))
            if path:
                targets.setdefault(path, error.get("msg"))
        if not targets:
            break

        # Deepest first, and higher list indices before lower ones
        for path in sorted(targets, key=lambda p: (len(p), p[-1] if isinstance(p[-1], int) else -1), reverse=True):
            _remove(data, path)
            logger.debug("Dropped invalid event field %s: %s", ".".join(map(str, path)), targets[path])

    logger.debug("Event payload could not be decoded, using empty envelope")
    return Envelope()


def envelopes_from_payload(payload: Any) -> list[dict]:
    """Unwrap a receive response into raw envelope mappings.

    The gateway answers with a list of ``{"envelope": ..., "account": ...}``
    wrappers, or occasionally a single wrapper object.
    """
    if isinstance(payload, Mapping):
        payload = [payload]
    if not isinstance(payload, list):
        return []

    envelopes = []
    for wrapper in payload:
        if isinstance(wrapper, Mapping) and isinstance(wrapper.get("envelope"), Mapping):
            envelopes.append(dict(wrapper["envelope"]))
        else:
            logger.debug("Skipping receive item without envelope: %r", wrapper)
    return envelopes


def event_hash(raw: Any) -> str:
    """SHA-1 hex digest of the canonical JSON serialization of an event.

    The event is decoded first, so only schema fields take part. Gateway
    metadata outside the schema does not change the hash.
    """
    fields = decode_envelope(raw).model_dump(by_alias=True)
    payload = json.dumps(fields, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()
