"""LLM backend behind a single ``ask`` capability, via LangChain."""

import logging
import re
from typing import Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from .config import LLMConfig
from .errors import EmptyResponseError, RequestError

logger = logging.getLogger(__name__)


class LLMBackend(Protocol):
    """Anything the dispatcher can ask a question."""

    async def ask(self, prompt: str) -> str: ...


class LLMHandler:
    """Answers prompts with the provider selected in config."""

    def __init__(self, config: LLMConfig, llm: BaseChatModel | None = None) -> None:
        self.config = config
        self.llm = llm if llm is not None else self._create_llm()

    def _create_llm(self) -> BaseChatModel:
        """Create the appropriate LLM based on config."""
        if self.config.provider == "gemini":
            from langchain_google_genai import ChatGoogleGenerativeAI

            return ChatGoogleGenerativeAI(
                model=self.config.model,
                google_api_key=self.config.api_key.get_secret_value(),
                timeout=self.config.timeout,
                max_retries=0,
            )
        elif self.config.provider == "openrouter":
            from langchain_openai import ChatOpenAI

            return ChatOpenAI(
                model=self.config.model,
                api_key=self.config.api_key.get_secret_value(),
                base_url=self.config.endpoint,
                timeout=self.config.timeout,
                max_retries=0,
            )
        else:
            raise ValueError(f"Unsupported LLM provider: {self.config.provider}")

    def _sanitize_text(self, text: str) -> str:
        """Strip control characters and zero-width characters from user text."""
        # Remove null bytes and other control characters (except newlines and tabs)
        text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)

        text = text.replace("\u200b", "")  # zero-width space
        text = text.replace("\u200c", "")  # zero-width non-joiner
        text = text.replace("\u200d", "")  # zero-width joiner
        text = text.replace("\ufeff", "")  # BOM

        return text.strip()

    @staticmethod
    def _response_text(content) -> str:
        # Some providers return a list of content parts instead of a string
        if isinstance(content, list):
            parts = []
            for part in content:
                if isinstance(part, str):
                    parts.append(part)
                elif isinstance(part, dict) and part.get("type", "text") == "text":
                    parts.append(part.get("text", ""))
            content = "".join(parts)
        return (content or "").strip()

    async def ask(self, prompt: str) -> str:
        """Send a prompt to the model and return its answer.

        Raises:
            RequestError: If the provider call fails or times out.
            EmptyResponseError: If the provider returns no text.
        """
        messages = []
        if self.config.system_prompt:
            messages.append(SystemMessage(content=self.config.system_prompt))
        messages.append(HumanMessage(content=self._sanitize_text(prompt)))

        logger.debug("Sending prompt to %s model %s", self.config.provider, self.config.model)
        try:
            response = await self.llm.ainvoke(messages)
        except Exception as e:
            raise RequestError(f"{self.config.provider} request failed: {e}") from e

        text = self._response_text(getattr(response, "content", None))
        if not text:
            raise EmptyResponseError(f"no response from {self.config.provider}")

        logger.debug("Generated response: %s", text[:100])
        return text
