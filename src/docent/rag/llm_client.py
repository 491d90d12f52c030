"""LiteLLM-backed generative model: answers and query rewriting.

All generation calls route through this module. LiteLLM's built-in retry is
used (``num_retries``). A generator is only built when the provider's API key
is present; otherwise the pipeline runs without one and degrades.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod

import litellm

from docent.config import GenerationCfg

logger = logging.getLogger(__name__)

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "google": "GOOGLE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}

REWRITE_PROMPT = """Rewrite the question into a SHORT factual search query.

Rules:
- Output ONE line only
- No explanations
- No examples
- No markdown
- No assumptions
- Preserve all names exactly
- Do NOT add new information
- Do NOT ask the user for clarification

Question:
{question}
"""

ANSWER_SYSTEM = "You are a helpful assistant that answers using ONLY the provided context."

ANSWER_PROMPT = """Answer using ONLY the context below.
If the answer is not in the context, say you don't know.

Context:
{context}

Question:
{question}
"""


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return  # No key required (e.g. ollama)

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


class Generator(ABC):
    """prompt → free text."""

    @abstractmethod
    async def generate(self, question: str, context: str) -> str:
        """Answer *question* from *context* only."""

    @abstractmethod
    async def rewrite_query(self, question: str) -> str:
        """Rewrite *question* into a one-line search query."""


class LiteLLMGenerator(Generator):
    def __init__(
        self,
        model: str,
        rewrite_model: str | None = None,
        max_tokens: int = 512,
        temperature: float = 0.0,
        num_retries: int = 3,
    ) -> None:
        self.model = model
        self.rewrite_model = rewrite_model or model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.num_retries = num_retries

    async def _complete(self, model: str, messages: list[dict], max_tokens: int) -> str:
        """Call litellm.acompletion() with retry/backoff. Returns content string.

        Raises:
            litellm.exceptions.APIError: On persistent API failure after retries.
        """
        response = await litellm.acompletion(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=self.temperature,
            num_retries=self.num_retries,
        )
        return response.choices[0].message.content or ""

    async def generate(self, question: str, context: str) -> str:
        messages = [
            {"role": "system", "content": ANSWER_SYSTEM},
            {"role": "user", "content": ANSWER_PROMPT.format(context=context, question=question)},
        ]
        return (await self._complete(self.model, messages, self.max_tokens)).strip()

    async def rewrite_query(self, question: str) -> str:
        messages = [{"role": "user", "content": REWRITE_PROMPT.format(question=question)}]
        text = await self._complete(self.rewrite_model, messages, 64)
        lines = [line.strip() for line in text.strip().splitlines() if line.strip()]
        return lines[0] if lines else ""


def build_generator(cfg: GenerationCfg) -> Generator | None:
    """Return a LiteLLMGenerator for *cfg*, or None when its API key is missing."""
    try:
        validate_api_key(cfg.model)
    except EnvironmentError as exc:
        logger.warning("Generation disabled: %s", exc)
        return None
    return LiteLLMGenerator(cfg.model, rewrite_model=cfg.rewrite_model, max_tokens=cfg.max_tokens)
