"""Completion oracle: the single request/response call into the LLM."""
import time
from typing import Optional, Protocol, runtime_checkable
from openai import OpenAI, OpenAIError
from config.llm_config import LLMConfig
from utils.error_handling import OracleError
from utils.logging_utils import setup_logging
from utils.metrics import get_metrics_collector

logger = setup_logging()
metrics = get_metrics_collector()


@runtime_checkable
class CompletionOracle(Protocol):
    """Anything that turns a (system prompt, user prompt) pair into text."""

    def get_completion(self, system_prompt: str, user_prompt: str) -> str:
        ...


class LLMClient:
    """Chat-completions client for an OpenAI-compatible endpoint.

    Transport and authorization failures degrade to an empty completion
    unless ``strict`` is set, in which case they raise ``OracleError``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        strict: bool = False,
        client: Optional[OpenAI] = None
    ):
        self.api_key = api_key if api_key is not None else LLMConfig.AI_API_KEY
        self.model = model or LLMConfig.AI_MODEL
        self.temperature = temperature if temperature is not None else LLMConfig.TEMPERATURE
        self.max_tokens = max_tokens or LLMConfig.MAX_TOKENS
        self.strict = strict

        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = OpenAI(
                api_key=self.api_key,
                base_url=base_url or LLMConfig.get_base_url()
            )
        else:
            self.client = None

    def get_completion(self, system_prompt: str, user_prompt: str) -> str:
        """
        Generate one completion.

        Args:
            system_prompt: Instructions and context
            user_prompt: The specific query

        Returns:
            The trimmed completion text, or "" on failure (non-strict mode)
        """
        if self.client is None:
            return self._fail("No API key configured for the completion oracle")

        start_time = time.time()
        logger.debug(
            "LLM completion request",
            model=self.model,
            system_prompt_length=len(system_prompt),
            user_prompt_length=len(user_prompt)
        )
        metrics.increment("llm.requests", tags={"model": self.model})

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except OpenAIError as e:
            metrics.increment("llm.errors", tags={"model": self.model})
            return self._fail(f"Error calling completion API: {e}", exception_type=type(e).__name__)
        finally:
            duration = time.time() - start_time
            metrics.histogram("llm.duration", duration, tags={"model": self.model})

        if not response.choices or response.choices[0].message.content is None:
            return self._fail(f"Empty response from model {self.model}")

        if response.usage:
            logger.debug(
                "LLM usage",
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens
            )

        return response.choices[0].message.content.strip()

    def _fail(self, reason: str, **context) -> str:
        if self.strict:
            raise OracleError(reason)
        logger.warning(f"{reason}; returning empty completion", **context)
        return ""
