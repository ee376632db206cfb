"""Error types raised by the gateway, LLM and downloader collaborators."""


class BotError(Exception):
    """Base class for bot errors."""

    pass


class TransportError(BotError):
    """Network failure or non-2xx response from the chat gateway."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(TransportError):
    """Response body could not be decoded as JSON."""

    pass


class NotFoundError(BotError):
    """Requested resource (e.g. a group) does not exist on the gateway."""

    pass


class FileError(TransportError):
    """Local media file could not be read."""

    pass


class LLMError(BotError):
    """Base class for LLM backend errors."""

    pass


class RequestError(LLMError):
    """LLM request failed (transport, timeout or provider error)."""

    pass


class EmptyResponseError(LLMError):
    """LLM returned no usable completion."""

    pass
