"""
AI Client
=========
Provider-agnostic access to the generation backend.

The generator only needs "prompt in, text out": :class:`AIClient` exposes a
single blocking ``generate()`` that never raises, and
:func:`get_ai_client` builds one from configuration on top of a
LlamaIndex LLM.  No retries happen here; one call per request.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from llama_index.core.llms import LLM

from idempiere_codegen.config import AIConfig, CodegenConfig

logger = logging.getLogger("idempiere_codegen.ai_client")


@dataclass(frozen=True)
class AIResponse:
    """Response from an AI generation request.

    Attributes:
        success: Whether the call produced text.
        content: Response text (None on failure).
        error: Failure description (None on success).
    """

    success: bool
    content: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, content: str) -> "AIResponse":
        return cls(success=True, content=content)

    @classmethod
    def fail(cls, error: str) -> "AIResponse":
        return cls(success=False, error=error)


class AIClient(ABC):
    """Abstraction for AI code generation providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider name for logging and identification."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Return True if the provider can be called (key present, etc.)."""

    @abstractmethod
    def generate(self, prompt: str) -> AIResponse:
        """Send ``prompt`` and return the response.  Must not raise."""

    def validate(self) -> AIResponse:
        """Check connectivity with a minimal request."""
        return self.generate("Reply with OK")


class LlamaIndexClient(AIClient):
    """:class:`AIClient` backed by a LlamaIndex LLM's ``complete()``.

    Args:
        llm: Any object with ``complete(prompt)`` returning a response with
            a ``text`` attribute (LlamaIndex ``LLM`` instances qualify).
        provider_name: Name reported in logs and console output.
    """

    def __init__(self, llm: LLM, provider_name: str):
        self._llm = llm
        self._provider_name = provider_name

    @property
    def provider_name(self) -> str:
        return self._provider_name

    def is_configured(self) -> bool:
        return self._llm is not None

    def generate(self, prompt: str) -> AIResponse:
        try:
            response = self._llm.complete(prompt)
        except Exception as e:
            logger.warning("%s generation call failed: %s", self._provider_name, str(e)[:200])
            return AIResponse.fail(f"{type(e).__name__}: {e}")

        text = getattr(response, "text", None)
        if not text or not text.strip():
            return AIResponse.fail(f"Empty response from {self._provider_name}")
        return AIResponse.ok(text)


def _build_llm(ai: AIConfig, api_key: str) -> Optional[LLM]:
    """Instantiate the LlamaIndex LLM for the configured provider."""
    model = ai.resolve_model()

    if ai.provider == "anthropic":
        from llama_index.llms.anthropic import Anthropic

        return Anthropic(
            model=model,
            api_key=api_key,
            max_tokens=ai.max_tokens,
            temperature=ai.temperature,
            timeout=ai.timeout,
            max_retries=0,
        )

    if ai.provider == "openai":
        from llama_index.llms.openai import OpenAI as OpenAILLM

        return OpenAILLM(
            model=model,
            api_key=api_key,
            max_tokens=ai.max_tokens,
            temperature=ai.temperature,
            timeout=ai.timeout,
            max_retries=0,
        )

    if ai.provider == "google":
        from llama_index.llms.google_genai import GoogleGenAI

        return GoogleGenAI(
            model=model,
            api_key=api_key,
            max_tokens=ai.max_tokens,
            temperature=ai.temperature,
        )

    return None


def get_ai_client(config: Optional[CodegenConfig] = None) -> Optional[AIClient]:
    """Return the configured AI client, or None if AI is not available.

    None is returned (never raised) when AI is disabled, the provider is
    ``"none"``, no API key is set, or the provider integration is not
    installed.  Callers treat None as "use templates".

    Args:
        config: CodegenConfig instance (optional, uses defaults if None).
    """
    if config is None:
        from idempiere_codegen.config import get_config
        config = get_config()

    ai = config.ai
    if not ai.enabled or ai.provider == "none":
        logger.debug("AI generation disabled")
        return None

    api_key = ai.resolve_api_key()
    if api_key is None:
        logger.info("AI provider %s has no API key configured", ai.provider)
        return None

    try:
        llm = _build_llm(ai, api_key)
    except ImportError as e:
        logger.warning("LlamaIndex integration for %s not installed: %s", ai.provider, e)
        return None
    except Exception as e:
        logger.warning("Could not initialize %s LLM: %s", ai.provider, e)
        return None

    if llm is None:
        return None
    return LlamaIndexClient(llm, provider_name=ai.provider)
