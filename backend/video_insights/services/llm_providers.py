"""
LLM provider abstraction for multiple backends.

Supports:
- Google Gemini (default)
- Ollama (local LLMs via HTTP API)
- OpenAI (GPT models)
- Anthropic (Claude models)

Every provider call carries a bounded timeout and reports any failure as
GenerationFailure. Retrying is left to the caller.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional
import logging
import time

import httpx

from video_insights.core.config import settings
from video_insights.core.exceptions import GenerationFailure

logger = logging.getLogger(__name__)


@dataclass
class Message:
    """Chat message."""

    role: str  # 'system', 'user', or 'assistant'
    content: str


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    model: str
    provider: str
    usage: Optional[Dict[str, int]] = None  # {input_tokens, output_tokens, total_tokens}
    finish_reason: Optional[str] = None
    response_time_seconds: Optional[float] = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    name: str = "base"

    @abstractmethod
    def complete(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> LLMResponse:
        """
        Generate a completion for the given messages.

        Args:
            messages: List of messages
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Additional provider-specific parameters (e.g. model override)

        Returns:
            LLMResponse object

        Raises:
            GenerationFailure: On auth, quota, transport, timeout or empty responses
        """
        pass


class GeminiProvider(LLMProvider):
    """Google Gemini provider using the google-genai SDK."""

    name = "gemini"

    def __init__(self, api_key: str = None, model: str = None, timeout: float = None):
        from google import genai
        from google.genai import types

        self.api_key = api_key or settings.gemini_api_key
        if not self.api_key:
            raise GenerationFailure("Gemini API key is required", reason="auth")

        self.model = model or settings.gemini_model
        self.timeout = timeout or settings.generation_timeout_seconds
        self._types = types
        self.client = genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),  # milliseconds
        )

    def complete(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> LLMResponse:
        """Generate completion using Gemini."""
        from google.genai import errors as genai_errors

        start_time = time.time()
        model = kwargs.pop("model", None) or self.model

        system_instruction = "\n\n".join(m.content for m in messages if m.role == "system") or None
        contents = [
            self._types.Content(
                role="model" if m.role == "assistant" else "user",
                parts=[self._types.Part(text=m.content)],
            )
            for m in messages
            if m.role != "system"
        ]

        config_kwargs = {}
        if system_instruction:
            config_kwargs["system_instruction"] = system_instruction
        if temperature is not None:
            config_kwargs["temperature"] = temperature
        if max_tokens is not None:
            config_kwargs["max_output_tokens"] = max_tokens

        try:
            response = self.client.models.generate_content(
                model=model,
                contents=contents,
                config=self._types.GenerateContentConfig(**config_kwargs),
            )
        except httpx.TimeoutException as e:
            raise GenerationFailure(f"Gemini request timed out: {str(e)}", reason="timeout")
        except genai_errors.APIError as e:
            raise GenerationFailure(f"Gemini API error: {str(e)}", reason=f"api-{getattr(e, 'code', 'error')}")
        except Exception as e:
            raise GenerationFailure(f"Gemini API error: {str(e)}")

        text = getattr(response, "text", None)
        if not text:
            raise GenerationFailure("Gemini returned an empty response", reason="empty-response")

        usage_metadata = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage_metadata, "prompt_token_count", 0) or 0
        output_tokens = getattr(usage_metadata, "candidates_token_count", 0) or 0

        return LLMResponse(
            content=text,
            model=model,
            provider=self.name,
            usage={
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            },
            response_time_seconds=time.time() - start_time,
        )


class OllamaProvider(LLMProvider):
    """
    Ollama LLM provider for local models.

    Connects to Ollama HTTP API (typically running on localhost:11434).
    """

    name = "ollama"

    def __init__(self, base_url: str = None, model: str = None, timeout: float = None):
        self.base_url = base_url or settings.ollama_base_url
        self.model = model or settings.ollama_model
        self.timeout = timeout or settings.generation_timeout_seconds
        self.client = httpx.Client(base_url=self.base_url, timeout=self.timeout)

    def complete(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> LLMResponse:
        """Generate completion using Ollama."""
        start_time = time.time()
        model = kwargs.pop("model", None) or self.model

        payload = {
            "model": model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
            "stream": False,
            "options": {},
        }
        if temperature is not None:
            payload["options"]["temperature"] = temperature
        if max_tokens is not None:
            payload["options"]["num_predict"] = max_tokens

        logger.debug(f"Ollama request: model={model}, num_predict={max_tokens}")

        try:
            response = self.client.post("/api/chat", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise GenerationFailure(f"Ollama request timed out: {str(e)}", reason="timeout")
        except httpx.HTTPError as e:
            raise GenerationFailure(f"Ollama API error: {str(e)}")
        except ValueError as e:
            raise GenerationFailure(f"Ollama returned invalid JSON: {str(e)}", reason="bad-response")

        content = (data.get("message") or {}).get("content")
        if not content:
            raise GenerationFailure("Ollama returned an empty response", reason="empty-response")

        return LLMResponse(
            content=content,
            model=model,
            provider=self.name,
            usage={
                "input_tokens": data.get("prompt_eval_count", 0),
                "output_tokens": data.get("eval_count", 0),
                "total_tokens": data.get("prompt_eval_count", 0) + data.get("eval_count", 0),
            },
            finish_reason=data.get("done_reason"),
            response_time_seconds=time.time() - start_time,
        )


class OpenAIProvider(LLMProvider):
    """OpenAI LLM provider (GPT models)."""

    name = "openai"

    def __init__(self, api_key: str = None, model: str = None, timeout: float = None):
        import openai

        self.api_key = api_key or settings.openai_api_key
        if not self.api_key:
            raise GenerationFailure("OpenAI API key is required", reason="auth")

        self.model = model or settings.openai_model
        self.timeout = timeout or settings.generation_timeout_seconds
        self.client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)

    def complete(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> LLMResponse:
        """Generate completion using OpenAI."""
        import openai

        start_time = time.time()
        params = {
            "model": kwargs.pop("model", None) or self.model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
        }
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        try:
            response = self.client.chat.completions.create(**params)
        except openai.APITimeoutError as e:
            raise GenerationFailure(f"OpenAI request timed out: {str(e)}", reason="timeout")
        except openai.APIError as e:
            raise GenerationFailure(f"OpenAI API error: {str(e)}")

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GenerationFailure("OpenAI returned an empty response", reason="empty-response")

        return LLMResponse(
            content=content,
            model=response.model,
            provider=self.name,
            usage={
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            } if response.usage else None,
            finish_reason=response.choices[0].finish_reason,
            response_time_seconds=time.time() - start_time,
        )


class AnthropicProvider(LLMProvider):
    """Anthropic LLM provider (Claude models)."""

    name = "anthropic"

    def __init__(self, api_key: str = None, model: str = None, timeout: float = None):
        import anthropic

        self.api_key = api_key or settings.anthropic_api_key
        if not self.api_key:
            raise GenerationFailure("Anthropic API key is required", reason="auth")

        self.model = model or settings.anthropic_model
        self.timeout = timeout or settings.generation_timeout_seconds
        self.client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout, max_retries=0)

    def complete(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> LLMResponse:
        """Generate completion using Anthropic."""
        import anthropic

        start_time = time.time()

        system_message = None
        conversation_messages = []
        for msg in messages:
            if msg.role == "system":
                system_message = msg.content
            else:
                conversation_messages.append({"role": msg.role, "content": msg.content})

        params = {
            "model": kwargs.pop("model", None) or self.model,
            "messages": conversation_messages,
            "max_tokens": max_tokens or settings.llm_max_tokens,
        }
        if system_message:
            params["system"] = system_message
        if temperature is not None:
            params["temperature"] = temperature

        try:
            response = self.client.messages.create(**params)
        except anthropic.APITimeoutError as e:
            raise GenerationFailure(f"Anthropic request timed out: {str(e)}", reason="timeout")
        except anthropic.APIError as e:
            raise GenerationFailure(f"Anthropic API error: {str(e)}")

        text_blocks = [block.text for block in response.content if getattr(block, "text", None)]
        if not text_blocks:
            raise GenerationFailure("Anthropic returned an empty response", reason="empty-response")

        return LLMResponse(
            content="".join(text_blocks),
            model=response.model,
            provider=self.name,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            },
            finish_reason=response.stop_reason,
            response_time_seconds=time.time() - start_time,
        )


_PROVIDER_CLASSES = {
    "gemini": GeminiProvider,
    "ollama": OllamaProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}


class LLMService:
    """
    High-level LLM service over the configured provider.

    Providers are constructed on first use and reused. An explicit model name
    routes to the matching provider:
    - "gemini-*" -> Gemini
    - "model:tag" -> Ollama
    - "claude-*" -> Anthropic
    - "gpt-*" -> OpenAI
    """

    def __init__(self, provider: Optional[LLMProvider] = None):
        self._default_provider = provider
        self._providers: Dict[str, LLMProvider] = {}
        if provider is not None:
            self._providers[provider.name] = provider

    def _get_provider(self, name: str) -> LLMProvider:
        if name not in self._providers:
            if name not in _PROVIDER_CLASSES:
                raise GenerationFailure(f"Unknown LLM provider: {name}", reason="config")
            self._providers[name] = _PROVIDER_CLASSES[name]()
        return self._providers[name]

    @property
    def provider(self) -> LLMProvider:
        if self._default_provider is None:
            self._default_provider = self._get_provider(settings.llm_provider)
        return self._default_provider

    def _get_provider_for_model(self, model_name: Optional[str]) -> LLMProvider:
        if not model_name:
            return self.provider
        if model_name.startswith("gemini-"):
            return self._get_provider("gemini")
        if ":" in model_name:
            return self._get_provider("ollama")
        if model_name.startswith("claude-"):
            return self._get_provider("anthropic")
        if model_name.startswith("gpt-"):
            return self._get_provider("openai")
        return self.provider

    def complete(
        self,
        messages: List[Message],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        **kwargs,
    ) -> LLMResponse:
        """
        Generate a completion with the provider matching the model name.

        Args:
            messages: List of messages
            temperature: Sampling temperature (defaults to settings)
            max_tokens: Maximum tokens to generate (defaults to settings)
            model: Optional explicit model name

        Returns:
            LLMResponse object

        Raises:
            GenerationFailure: If the provider cannot be built or the call fails
        """
        temperature = temperature if temperature is not None else settings.llm_temperature
        max_tokens = max_tokens if max_tokens is not None else settings.llm_max_tokens

        provider = self._get_provider_for_model(model)
        response = provider.complete(messages, temperature, max_tokens, model=model, **kwargs)
        logger.info(
            f"[LLM] {response.provider}/{response.model} responded in "
            f"{(response.response_time_seconds or 0):.2f}s"
        )
        return response

    def generate(self, prompt: str, model: Optional[str] = None) -> str:
        """Send a single user prompt and return the raw response text."""
        return self.complete([Message(role="user", content=prompt)], model=model).content


@lru_cache(maxsize=1)
def get_llm_service() -> LLMService:
    """Process-wide LLM service, created on first use."""
    return LLMService()
