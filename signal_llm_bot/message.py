"""Message extraction: mention stripping and bot-addressed detection."""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from .events import Envelope, Mention, Quote, decode_envelope

PHONE_PATTERN = re.compile(r"^\+?\d+$")
WHITESPACE_RUN = re.compile(r"\s+")


@dataclass
class Message:
    """Normalized view of one inbound event."""

    source_number: str = ""
    source_uuid: str = ""
    group_id: str = ""
    raw_text: str = ""
    clean_text: str = ""
    mentions: list[Mention] = field(default_factory=list)
    bot_mentioned: bool = False
    quote: Optional[Quote] = None
    event_hash: str = ""
    raw_event: Any = None


def looks_like_phone(value: str) -> bool:
    """Check whether a string is an (optionally +prefixed) run of digits, ignoring spaces."""
    return bool(PHONE_PATTERN.match(normalize_phone(value)))


def normalize_phone(value: str) -> str:
    """Strip surrounding whitespace and internal spaces from a phone number."""
    return value.strip().replace(" ", "")


def remove_mentions_from_text(text: str, mentions: list[Mention]) -> str:
    """
    Remove mention spans from text and collapse whitespace.

    Spans are removed highest start first, so lower offsets stay valid
    against the original text. Overlapping spans are not reconciled: each
    span is clamped against whatever text is left when its turn comes.

    Args:
        text: Raw message text.
        mentions: Mention spans with code point offsets.

    Returns:
        Text with the spans removed, whitespace runs collapsed and trimmed.
    """
    if not text or not mentions:
        return text.strip()

    chars = list(text)
    # sorted() is stable, equal starts keep their received order
    for mention in sorted(mentions, key=lambda m: m.start, reverse=True):
        start = max(mention.start, 0)
        if start >= len(chars):
            continue
        end = min(start + max(mention.length, 0), len(chars))
        del chars[start:end]

    return WHITESPACE_RUN.sub(" ", "".join(chars)).strip()


def _classify_source(envelope: Envelope) -> tuple[str, str]:
    source_number = ""
    source_uuid = envelope.source_uuid.strip()

    for candidate in (envelope.source_number, envelope.source):
        candidate = candidate.strip()
        if not candidate:
            continue
        if looks_like_phone(candidate):
            if not source_number:
                source_number = candidate
        elif not source_uuid:
            source_uuid = candidate

    return source_number, source_uuid


def _mentions_bot(mentions: list[Mention], bot_number: str, bot_uuid: str) -> bool:
    wanted_number = normalize_phone(bot_number)
    for mention in mentions:
        number = normalize_phone(mention.number)
        if number and wanted_number and number == wanted_number:
            return True
        if mention.uuid and bot_uuid and mention.uuid == bot_uuid:
            return True
    return False


def _extract_quote(quote: Optional[Quote]) -> Optional[Quote]:
    if quote is None or not quote.text:
        return None
    author = quote.author or quote.author_uuid
    return Quote(id=quote.id, author=author, author_uuid=quote.author_uuid, text=quote.text)


def extract(event: Any, bot_number: str, bot_uuid: str = "", event_hash: str = "") -> Message:
    """
    Build a Message from a raw inbound event.

    Never raises: missing or malformed fields leave the corresponding
    Message fields at their defaults.

    Args:
        event: Envelope, envelope mapping, or receive wrapper mapping.
        bot_number: The bot's own phone number.
        bot_uuid: The bot's own account UUID, if known.
        event_hash: Hash of the raw event, computed by the caller.

    Returns:
        Extracted Message.
    """
    envelope = decode_envelope(event)
    message = Message(event_hash=event_hash, raw_event=event)

    data = envelope.data_message
    if data is None:
        fragment = envelope.message or envelope.text or ""
        message.raw_text = fragment
        message.clean_text = fragment.strip()
        return message

    message.source_number, message.source_uuid = _classify_source(envelope)
    if data.group_info is not None:
        message.group_id = data.group_info.group_id

    message.raw_text = data.message or ""
    message.clean_text = message.raw_text.strip()

    if data.mentions:
        message.mentions = list(data.mentions)
        message.clean_text = remove_mentions_from_text(message.raw_text, message.mentions)
        message.bot_mentioned = _mentions_bot(message.mentions, bot_number, bot_uuid)
    elif bot_number and bot_number.lower() in message.clean_text.lower():
        message.bot_mentioned = True
        message.clean_text = message.clean_text.replace(bot_number, "").strip()

    message.quote = _extract_quote(data.quote)
    return message


def target_label(message: Message) -> str:
    """Human-readable destination tag for logging."""
    if message.group_id:
        return f"group {message.group_id}"
    if message.source_number:
        return f"user {message.source_number}"
    if message.source_uuid:
        return f"user-uuid {message.source_uuid}"
    return "unknown"
