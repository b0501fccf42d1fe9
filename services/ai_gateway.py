"""Chat-completion backends. Each backend exposes complete(messages, json_mode, temperature) -> str."""
import logging
from typing import Dict, List, Optional

import openai
import requests
from openai import OpenAI

from services.errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_TEMPERATURE = 0.3
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OLLAMA_ENDPOINT = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llama3"


class OpenAIChatBackend:
    provider = "openai"

    def __init__(self, api_key=None, model=DEFAULT_OPENAI_MODEL, timeout=DEFAULT_TIMEOUT_SECONDS, client=None):
        self.api_key = api_key
        self.model = model or DEFAULT_OPENAI_MODEL
        self.timeout = float(timeout)
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise ProviderError("OPENAI_API_KEY is not set")
            # No automatic retries.
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def complete(
        self,
        messages: List[Dict[str, str]],
        json_mode: bool = True,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str:
        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        client = self._get_client()
        try:
            response = client.chat.completions.create(**kwargs)
        except openai.OpenAIError as exc:
            logger.warning("OpenAI API error: %s", exc)
            raise ProviderError(f"OpenAI API error: {exc}") from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise ProviderError("Invalid response from OpenAI: missing message content") from exc
        if not content:
            raise ProviderError("Invalid response from OpenAI: missing message content")
        return content


class OllamaChatBackend:
    provider = "ollama"

    def __init__(self, endpoint=DEFAULT_OLLAMA_ENDPOINT, model=DEFAULT_OLLAMA_MODEL, timeout=DEFAULT_TIMEOUT_SECONDS, session=None):
        self.endpoint = (endpoint or DEFAULT_OLLAMA_ENDPOINT).rstrip("/")
        self.model = model or DEFAULT_OLLAMA_MODEL
        self.timeout = float(timeout)
        self.http = session or requests.Session()

    def complete(
        self,
        messages: List[Dict[str, str]],
        json_mode: bool = True,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str:
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature},
        }
        if json_mode:
            payload["format"] = "json"

        try:
            response = self.http.post(f"{self.endpoint}/api/chat", json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Ollama request failed: %s", exc)
            raise ProviderError(f"Failed to call Ollama API: {exc}") from exc

        if not response.ok:
            logger.warning("Ollama API error: %s", response.status_code)
            raise ProviderError(f"Ollama API error: {response.status_code} - {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError("Invalid response from Ollama: body is not JSON") from exc

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not content:
            raise ProviderError("Invalid response from Ollama: missing message content")
        return content

    def test_connection(self) -> bool:
        try:
            response = self.http.get(f"{self.endpoint}/api/tags", timeout=self.timeout)
        except requests.RequestException:
            return False
        return response.ok

    def list_models(self) -> List[str]:
        try:
            response = self.http.get(f"{self.endpoint}/api/tags", timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Error listing Ollama models: %s", exc)
            return []
        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            return []
        return [m["name"] for m in models if isinstance(m, dict) and m.get("name")]


def build_chat_backend(config):
    """Select the chat backend from AI_PROVIDER (openai | ollama)."""
    provider = str(config.get("AI_PROVIDER") or "openai").strip().lower()
    timeout = float(config.get("AI_TIMEOUT_SECONDS") or DEFAULT_TIMEOUT_SECONDS)
    if provider == "openai":
        return OpenAIChatBackend(
            api_key=config.get("OPENAI_API_KEY"),
            model=config.get("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
            timeout=timeout,
        )
    if provider == "ollama":
        return OllamaChatBackend(
            endpoint=config.get("OLLAMA_ENDPOINT") or DEFAULT_OLLAMA_ENDPOINT,
            model=config.get("OLLAMA_MODEL") or DEFAULT_OLLAMA_MODEL,
            timeout=timeout,
        )
    raise ValueError(f"Unknown AI_PROVIDER: {provider}")


def describe_backend(backend) -> Dict[str, Optional[object]]:
    info = {
        "provider": getattr(backend, "provider", None),
        "model": getattr(backend, "model", None),
    }
    if isinstance(backend, OllamaChatBackend):
        info["endpoint"] = backend.endpoint
        info["reachable"] = backend.test_connection()
        info["models"] = backend.list_models() if info["reachable"] else []
    return info
