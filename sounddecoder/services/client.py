"""
Chat-completion client for the LLM classification backend.

Supports TogetherAI and OpenAI through the OpenAI SDK, with thread-safe
lazy initialization of the underlying client.
"""

import logging
import os
import threading
from typing import Any, Dict, Optional

from openai import OpenAI

from sounddecoder.utils.errors import ClassificationServiceError, ModelLoadError


# Default models per provider
DEFAULT_MODELS: Dict[str, str] = {
    "togetherai": "meta-llama/Llama-3.3-70B-Instruct-Turbo",
    "openai": "gpt-4o-mini",
}

# Base URLs per provider
PROVIDER_BASE_URLS: Dict[str, Optional[str]] = {
    "togetherai": "https://api.together.xyz/v1",
    "openai": None,  # OpenAI SDK uses default
}

# Seconds the SDK waits for one HTTP response
DEFAULT_REQUEST_TIMEOUT: float = 25.0


class LLMClient:
    """
    Thread-safe, lazily created OpenAI-compatible chat client.

    The SDK client is built on first use (double-checked locking) and
    reused for every call afterwards.
    """

    def __init__(
        self,
        provider: str = "togetherai",
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 400,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.provider = provider.lower()
        self.model = model or DEFAULT_MODELS.get(
            self.provider, DEFAULT_MODELS["togetherai"]
        )
        self.default_temperature = temperature
        self.default_max_tokens = max_tokens
        self.request_timeout = request_timeout
        self._api_key = self._resolve_api_key(api_key)
        self._client: Optional[Any] = None
        self._lock = threading.Lock()
        self.logger = logging.getLogger("services.client")

    @property
    def model_id(self) -> str:
        """Provider/model identifier string."""
        return f"{self.provider}/{self.model}"

    @property
    def client(self) -> Any:
        """Thread-safe lazy-initialized OpenAI client."""
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._create_client()
        return self._client

    def chat(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Send a chat completion request and return the assistant's text.

        Args:
            system_prompt: Instructions for the model
            user_prompt: The classification request
            temperature: Override for the default sampling temperature
            max_tokens: Override for the default response length

        Returns:
            The text content of the first choice

        Raises:
            ModelLoadError: No API key is configured
            ClassificationServiceError: The API call fails or returns nothing
        """
        client = self.client

        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature if temperature is not None else self.default_temperature,
                max_tokens=max_tokens or self.default_max_tokens,
            )
            content = response.choices[0].message.content
        except Exception as e:
            raise ClassificationServiceError(
                f"LLM API call failed: {e}",
                service_name=self.model_id,
                original_error=e,
            ) from e

        if not content:
            raise ClassificationServiceError(
                "LLM returned an empty response",
                service_name=self.model_id,
            )
        return content

    def _resolve_api_key(self, api_key: Optional[str]) -> Optional[str]:
        """Resolve API key from parameter, ${VAR} template, or environment."""
        if api_key:
            if api_key.startswith("${") and api_key.endswith("}"):
                return os.environ.get(api_key[2:-1])
            return api_key

        if self.provider == "togetherai":
            return os.environ.get("TOGETHER_API_KEY") or os.environ.get(
                "TOGETHERAI_API_KEY"
            )
        elif self.provider == "openai":
            return os.environ.get("OPENAI_API_KEY")
        return None

    def _create_client(self) -> Any:
        """Create the OpenAI-compatible client for the configured provider."""
        if not self._api_key:
            env_vars = (
                "TOGETHER_API_KEY or TOGETHERAI_API_KEY"
                if self.provider == "togetherai"
                else "OPENAI_API_KEY"
            )
            raise ModelLoadError(
                f"No API key found for {self.provider}. Set {env_vars} environment variable.",
                model_name=self.provider,
            )

        kwargs: Dict[str, Any] = {
            "api_key": self._api_key,
            "timeout": self.request_timeout,
            "max_retries": 0,
        }
        base_url = PROVIDER_BASE_URLS.get(self.provider)
        if base_url:
            kwargs["base_url"] = base_url
        self.logger.debug(f"Creating client for {self.model_id}")
        return OpenAI(**kwargs)


def create_llm_client(config: Dict[str, Any]) -> LLMClient:
    """
    Factory function to create LLMClient from the 'llm' config section.
    """
    return LLMClient(
        provider=config.get("provider") or "togetherai",
        model=config.get("model"),
        api_key=config.get("api_key"),
        temperature=config.get("temperature", 0.2),
        max_tokens=config.get("max_tokens", 400),
        request_timeout=config.get("request_timeout", DEFAULT_REQUEST_TIMEOUT),
    )
