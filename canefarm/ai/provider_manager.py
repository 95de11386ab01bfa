"""
Provider selection for call analysis

Enabled providers are tried in priority order. A provider that keeps failing
is benched until reset_failures(); clients are built lazily and cached.
"""

import os
import logging
from typing import List, Dict, Any, Optional, Tuple

from .providers import (
    OpenAILLMClient,
    DeepSeekLLMClient,
    AnthropicLLMClient,
    GeminiLLMClient,
    LocalLLMClient,
)
from .rate_limiter import RateLimiter

logger = logging.getLogger('canefarm.ai.provider_manager')

PROVIDER_ALIASES = {
    'gpt': 'openai',
    'claude': 'anthropic',
}

API_KEY_ENV = {
    'openai': 'OPENAI_API_KEY',
    'anthropic': 'ANTHROPIC_API_KEY',
    'gemini': 'GEMINI_API_KEY',
    'deepseek': 'DEEPSEEK_API_KEY',
}

_CLIENT_CLASSES = {
    'openai': OpenAILLMClient,
    'anthropic': AnthropicLLMClient,
    'gemini': GeminiLLMClient,
    'deepseek': DeepSeekLLMClient,
}

_SETTING_DEFAULTS = {
    'name': 'unnamed',
    'priority': 999,
    'enabled': False,
    'model': '',
    'endpoint': '',
    'api_key': '',
    'timeout': 30,
    'max_output_tokens': 1024,
}


class ProviderConfig:
    """
    One entry of the ai.providers config list

    `provider` is normalized to a canonical kind ("gpt" becomes "openai",
    "claude" becomes "anthropic"). The call interval comes from
    min_interval, else from rate_limit (calls per minute), else from the
    manager default.
    """

    def __init__(self, settings: Dict[str, Any], default_min_interval: float = 1.0):
        for key, default in _SETTING_DEFAULTS.items():
            setattr(self, key, settings.get(key, default))
        kind = str(settings.get('provider', '')).strip().lower()
        self.provider = PROVIDER_ALIASES.get(kind, kind)
        self.min_interval = settings.get('min_interval')
        if self.min_interval is None:
            self.min_interval = self._interval_from_rate(settings.get('rate_limit'), default_min_interval)

    def _interval_from_rate(self, rate_limit, default: float) -> float:
        if not rate_limit:
            return default
        try:
            per_minute = float(rate_limit)
        except (TypeError, ValueError):
            logger.warning("Provider %s has a non-numeric rate_limit %r, using %.1fs",
                           self.name, rate_limit, default)
            return default
        return 60.0 / per_minute if per_minute > 0 else default

    def __repr__(self):
        return f"ProviderConfig({self.name!r}, {self.provider}/{self.model}, priority={self.priority})"


class LLMProviderManager:
    """
    Picks the provider for the next analysis request

    The cursor stays on the current provider until fallback_to_next() moves
    it; providers with max_failures_per_provider failures are passed over.
    """

    def __init__(self, providers_config: List[Dict[str, Any]], default_min_interval: float = 1.0,
                 max_failures_per_provider: int = 3):
        """
        Args:
            providers_config: The ai.providers config list
            default_min_interval: Seconds between calls for providers without limits
            max_failures_per_provider: Failures that bench a provider
        """
        configs = [ProviderConfig(entry, default_min_interval) for entry in providers_config or []]
        self.providers: List[ProviderConfig] = sorted(
            (c for c in configs if c.enabled), key=lambda c: c.priority)
        self.max_failures_per_provider = max_failures_per_provider
        self.failures: Dict[str, int] = {}
        self._cursor = 0
        self._clients: Dict[str, Tuple[Any, RateLimiter]] = {}

        if self.providers:
            logger.info("LLM providers in priority order: %s",
                        ", ".join(f"{c.name} ({c.provider} {c.model})" for c in self.providers))
        else:
            logger.warning("No LLM provider is enabled, call analysis will fail")

    def resolve_api_key(self, provider_config: ProviderConfig) -> str:
        """Configured key, else the provider's environment variable"""
        if provider_config.api_key:
            return provider_config.api_key
        env_var = API_KEY_ENV.get(provider_config.provider)
        return os.environ.get(env_var, '') if env_var else ''

    def create_client(self, provider_config: ProviderConfig) -> Tuple[Optional[Any], Optional[RateLimiter], str]:
        """
        Build the SDK client and rate limiter for a provider

        Returns:
            (client, rate_limiter, "") on success, (None, None, reason) otherwise
        """
        kind = provider_config.provider
        if kind == 'local':
            return LocalLLMClient(), RateLimiter(provider_config.min_interval), ""

        client_class = _CLIENT_CLASSES.get(kind)
        if client_class is None:
            return None, None, f"Unknown provider type: {kind}"

        api_key = self.resolve_api_key(provider_config)
        if not api_key:
            return None, None, f"API key not set for {provider_config.name} ({API_KEY_ENV[kind]})"

        endpoint = provider_config.endpoint
        if not endpoint and client_class is DeepSeekLLMClient:
            endpoint = DeepSeekLLMClient.DEFAULT_ENDPOINT
        try:
            client = client_class(
                api_key=api_key,
                model=provider_config.model,
                endpoint=endpoint,
                timeout=provider_config.timeout,
                max_output_tokens=provider_config.max_output_tokens
            )
        except Exception as e:
            return None, None, f"Could not create {provider_config.name} client: {e}"
        return client, RateLimiter(provider_config.min_interval), ""

    def _client_for(self, provider_config: ProviderConfig) -> Tuple[Optional[Any], Optional[RateLimiter], str]:
        if provider_config.name in self._clients:
            client, limiter = self._clients[provider_config.name]
            return client, limiter, ""
        client, limiter, error = self.create_client(provider_config)
        if client is not None:
            self._clients[provider_config.name] = (client, limiter)
        return client, limiter, error

    def _benched(self, provider_config: ProviderConfig) -> bool:
        return self.failures.get(provider_config.name, 0) >= self.max_failures_per_provider

    def _advance(self):
        self._cursor = (self._cursor + 1) % len(self.providers)

    def get_next_provider(self) -> Optional[Tuple[ProviderConfig, Any, RateLimiter]]:
        """
        Current usable provider, starting from the cursor

        Providers whose client cannot be built count a failure and are
        passed over.

        Returns:
            (provider_config, client, rate_limiter), or None when every
            provider is benched or unavailable
        """
        for _ in range(len(self.providers)):
            provider_config = self.providers[self._cursor]
            if self._benched(provider_config):
                logger.debug("Passing over %s (%d failures)",
                             provider_config.name, self.failures[provider_config.name])
                self._advance()
                continue

            client, limiter, error = self._client_for(provider_config)
            if client is not None:
                return provider_config, client, limiter

            logger.warning("Provider %s unavailable: %s", provider_config.name, error)
            self.record_failure(provider_config.name)
            self._advance()

        if self.providers:
            logger.error("No LLM provider is currently usable")
        return None

    def record_failure(self, provider_name: str):
        count = self.failures.get(provider_name, 0) + 1
        self.failures[provider_name] = count
        if count >= self.max_failures_per_provider:
            logger.warning("Provider %s benched after %d failures", provider_name, count)
        else:
            logger.info("Provider %s failed (%d/%d)", provider_name, count, self.max_failures_per_provider)

    def record_success(self, provider_name: str):
        self.failures.pop(provider_name, None)

    def fallback_to_next(self):
        if self.providers:
            logger.info("Moving on from provider %s", self.providers[self._cursor].name)
            self._advance()

    def reset_failures(self):
        """Clear all failure counts and go back to the highest-priority provider"""
        self.failures.clear()
        self._cursor = 0
        logger.info("LLM provider failures reset")

    def test_connections(self) -> Dict[str, Tuple[bool, str]]:
        """Test every enabled provider; returns {name: (ok, message)}"""
        results = {}
        for provider_config in self.providers:
            client, _, error = self._client_for(provider_config)
            results[provider_config.name] = client.test_connection() if client is not None else (False, error)
        return results
