from typing import List, Optional, Dict, Any
from openai import OpenAI

from config.settings import (
    AI_GATEWAY_URL,
    AI_GATEWAY_API_KEY,
    AI_GATEWAY_MODEL,
)
from utils.logger import get_logger

logger = get_logger(__name__)


class LLMClient:
    """
    Reusable client for the AI gateway (any OpenAI-compatible
    chat completions endpoint).
    """

    _instance: Optional["LLMClient"] = None

    def __init__(self):
        logger.info("=" * 60)
        logger.info("Initializing LLMClient...")

        self.model = AI_GATEWAY_MODEL
        self.client = OpenAI(
            base_url=AI_GATEWAY_URL,
            api_key=AI_GATEWAY_API_KEY,
        ) if AI_GATEWAY_API_KEY else None

        # Track total token usage across all requests
        self.total_prompt_tokens = 0
        self.total_completion_tokens = 0
        self.total_requests = 0

        if self.client:
            logger.info(f"LLMClient initialized successfully")
            logger.info(f"  Endpoint: {AI_GATEWAY_URL or 'default'}")
            logger.info(f"  Model: {self.model}")
        else:
            logger.warning("LLMClient NOT configured - AI_GATEWAY_API_KEY not set")
        logger.info("=" * 60)

    @classmethod
    def get_instance(cls) -> "LLMClient":
        """Get singleton instance of LLMClient."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def is_configured(self) -> bool:
        """Check if the client is properly configured."""
        return self.client is not None

    def chat_completion(
        self,
        messages: List[dict],
        max_tokens: int = 4000,
        temperature: float = 0.7,
        **kwargs
    ) -> tuple[str, Dict[str, Any]]:
        """
        Send a chat completion request to the AI gateway.

        Args:
            messages: List of message dicts with 'role' and 'content'
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature (0-2)
            **kwargs: Additional parameters passed to the API

        Returns:
            Tuple of (response content, usage stats dict)
        """
        if not self.client:
            raise ValueError("AI gateway client not configured. Check environment variables.")

        logger.info(f"[LLM] Sending chat completion request (max_tokens={max_tokens}, temp={temperature})")

        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs
        )

        usage_stats = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
        usage = response.usage
        if usage:
            usage_stats = {
                "prompt_tokens": usage.prompt_tokens,
                "completion_tokens": usage.completion_tokens,
                "total_tokens": usage.total_tokens,
            }

        # Update cumulative stats
        self.total_prompt_tokens += usage_stats["prompt_tokens"]
        self.total_completion_tokens += usage_stats["completion_tokens"]
        self.total_requests += 1

        logger.info(
            f"[LLM] Response received: {usage_stats['total_tokens']:,} tokens "
            f"({self.total_requests} requests, "
            f"{self.total_prompt_tokens + self.total_completion_tokens:,} tokens so far)"
        )

        content = response.choices[0].message.content if response.choices else None
        return content or "", usage_stats


# Convenience function to get the client
def get_llm_client() -> LLMClient:
    """Get the singleton LLM client instance."""
    return LLMClient.get_instance()
