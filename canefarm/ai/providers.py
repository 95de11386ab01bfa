"""
LLM clients for call analysis

Each client wraps one SDK and offers:
- analyze_transcript(transcript, system_prompt) -> dict or None
- test_connection() -> (ok, message)

A successful analysis is the model's JSON object with two extra keys,
"__raw_text" and "__token_usage". SDK errors and unparseable replies are
logged and come back as None so the provider manager can fall back.
"""

import re
import json
import logging
from typing import Dict, Any, Optional, Tuple

logger = logging.getLogger("canefarm.ai.providers")

_FENCED_JSON = re.compile(r'```(?:json)?\s*(\{.*?\})\s*```', re.DOTALL)

PING_PROMPT = "Reply with the single word: ready"
ANALYSIS_TEMPERATURE = 0.2


def format_user_prompt(transcript: str) -> str:
    return "Analyze this farmer call transcript and respond with a JSON object.\n\nTRANSCRIPT:\n" + transcript


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """
    Pull a JSON object out of model output

    A fenced ```json block wins; otherwise the span from the first "{" to
    the last "}" is parsed.

    Returns:
        The parsed object, or None
    """
    if not text:
        return None
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidate = fenced.group(1)
    else:
        first, last = text.find("{"), text.rfind("}")
        if first == -1 or last <= first:
            logger.error("Model reply has no JSON object: %.200s", text)
            return None
        candidate = text[first:last + 1]

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.error("Model reply is not valid JSON (%s): %.200s", e, candidate)
        return None
    if not isinstance(parsed, dict):
        logger.error("Model reply is a JSON %s, not an object", type(parsed).__name__)
        return None
    return parsed


def _usage(client_name: str, input_tokens, output_tokens, total_tokens=None) -> Dict[str, int]:
    input_tokens = input_tokens or 0
    output_tokens = output_tokens or 0
    usage = {
        'input_tokens': input_tokens,
        'output_tokens': output_tokens,
        'total_tokens': total_tokens or input_tokens + output_tokens,
    }
    logger.info("%s used %d input / %d output tokens", client_name, input_tokens, output_tokens)
    return usage


def _finish(client_name: str, text: str, usage: Dict[str, int]) -> Optional[Dict[str, Any]]:
    logger.debug("%s reply (%d chars): %s", client_name, len(text), text)
    parsed = extract_json(text)
    if parsed is None:
        return None
    parsed["__raw_text"] = text
    parsed["__token_usage"] = usage
    return parsed


class BaseLLMClient:
    model = ""

    def analyze_transcript(self, transcript: str, system_prompt: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def test_connection(self) -> Tuple[bool, str]:
        raise NotImplementedError


class OpenAILLMClient(BaseLLMClient):
    """Chat Completions with JSON response format"""

    def __init__(self, api_key: str, model: str, endpoint: Optional[str] = None, timeout: int = 30,
                 max_output_tokens: int = 1024, client=None):
        """
        Args:
            api_key: API key for the endpoint
            model: Model name, e.g. "gpt-4-turbo"
            endpoint: Base URL for OpenAI-compatible hosts (optional)
            timeout: Request timeout in seconds
            max_output_tokens: Completion token cap
            client: Ready-made SDK client, used instead of building one
        """
        self.model = model
        self.max_output_tokens = max_output_tokens
        if client is None:
            from openai import OpenAI
            options = {"api_key": api_key, "timeout": timeout}
            if endpoint:
                options["base_url"] = endpoint
            client = OpenAI(**options)
        self.client = client
        self.name = type(self).__name__
        logger.info("%s ready (model %s, endpoint %s)", self.name, model, endpoint or "default")

    def _complete(self, messages, **options):
        return self.client.chat.completions.create(model=self.model, messages=messages, **options)

    def analyze_transcript(self, transcript, system_prompt):
        try:
            resp = self._complete(
                [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": format_user_prompt(transcript)},
                ],
                temperature=ANALYSIS_TEMPERATURE,
                max_tokens=self.max_output_tokens,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error("%s request failed: %s", self.name, e)
            return None

        text = (resp.choices[0].message.content or "") if resp.choices else ""
        usage = getattr(resp, 'usage', None)
        token_usage = _usage(self.name, usage.prompt_tokens, usage.completion_tokens,
                             usage.total_tokens) if usage else {}
        return _finish(self.name, text, token_usage)

    def test_connection(self):
        try:
            resp = self._complete([{"role": "user", "content": PING_PROMPT}], max_tokens=20)
        except Exception as e:
            return False, str(e)
        return True, (resp.choices[0].message.content or "").strip()


class DeepSeekLLMClient(OpenAILLMClient):
    """DeepSeek speaks the OpenAI protocol at its own base URL"""

    DEFAULT_ENDPOINT = "https://api.deepseek.com"


def _anthropic_text(resp) -> str:
    return "".join(block.text for block in resp.content or [] if hasattr(block, "text"))


class AnthropicLLMClient(BaseLLMClient):
    name = "Anthropic"

    def __init__(self, api_key: str, model: str, endpoint: Optional[str] = None, timeout: int = 30,
                 max_output_tokens: int = 1024, client=None):
        self.model = model
        self.max_output_tokens = max_output_tokens
        if client is None:
            import anthropic
            options = {"api_key": api_key, "timeout": timeout}
            if endpoint:
                options["base_url"] = endpoint
            client = anthropic.Anthropic(**options)
        self.client = client
        logger.info("Anthropic client ready (model %s)", model)

    def analyze_transcript(self, transcript, system_prompt):
        try:
            resp = self.client.messages.create(
                model=self.model,
                system=system_prompt,
                messages=[{"role": "user", "content": format_user_prompt(transcript)}],
                temperature=ANALYSIS_TEMPERATURE,
                max_tokens=self.max_output_tokens,
            )
        except Exception as e:
            logger.error("Anthropic request failed: %s", e)
            return None

        usage = getattr(resp, 'usage', None)
        token_usage = _usage(self.name, usage.input_tokens, usage.output_tokens) if usage else {}
        return _finish(self.name, _anthropic_text(resp), token_usage)

    def test_connection(self):
        try:
            resp = self.client.messages.create(
                model=self.model, max_tokens=20,
                messages=[{"role": "user", "content": PING_PROMPT}])
        except Exception as e:
            return False, str(e)
        return True, _anthropic_text(resp).strip()


class GeminiLLMClient(BaseLLMClient):
    """google-genai client with a JSON response MIME type"""

    name = "Gemini"

    def __init__(self, api_key: str, model: str, timeout: int = 30, endpoint: Optional[str] = None,
                 max_output_tokens: int = 1024, client=None):
        from google.genai import types

        self.model = model
        self.max_output_tokens = max_output_tokens
        self.types = types
        if client is None:
            from google import genai
            options = {"api_key": api_key}
            if endpoint and endpoint.strip():
                options["http_options"] = types.HttpOptions(base_url=endpoint, timeout=timeout * 1000)
            else:
                options["http_options"] = types.HttpOptions(timeout=timeout * 1000)
            client = genai.Client(**options)
        self.client = client
        logger.info("Gemini client ready (model %s, endpoint %s)", model, endpoint or "default")

    def analyze_transcript(self, transcript, system_prompt):
        config = self.types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=ANALYSIS_TEMPERATURE,
            max_output_tokens=self.max_output_tokens,
            response_mime_type="application/json",
        )
        try:
            resp = self.client.models.generate_content(
                model=self.model, contents=format_user_prompt(transcript), config=config)
        except Exception as e:
            logger.error("Gemini request failed (%s): %s", type(e).__name__, e)
            return None

        usage = getattr(resp, 'usage_metadata', None)
        token_usage = _usage(self.name, usage.prompt_token_count, usage.candidates_token_count,
                             usage.total_token_count) if usage else {}
        return _finish(self.name, resp.text or "", token_usage)

    def test_connection(self):
        try:
            resp = self.client.models.generate_content(model=self.model, contents=PING_PROMPT)
        except Exception as e:
            return False, str(e)
        return True, (resp.text or "").strip() or "Gemini responded"


class LocalLLMClient(BaseLLMClient):
    """Offline mode: never produces an analysis"""

    model = "local"

    def analyze_transcript(self, transcript, system_prompt):
        return None

    def test_connection(self):
        return True, "Local mode (no external LLM)"
