# codegen/provider_adapters.py
"""
Provider-specific adapters: request construction and response normalization.

Every provider speaks its own tool-calling dialect. An adapter turns a
ProviderRequest into the provider's HTTP request and turns the provider's
reply back into a ProviderResponse, so nothing past the gateway ever sees a
provider-specific shape.
"""
from abc import ABC, abstractmethod
import json
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Console

from codegen.data_models import ProviderConfig, ProviderRequest, ProviderResponse, ToolInvocation
from codegen.errors import ProviderError

OPENAI_API_BASE = "https://api.openai.com/v1"
GROQ_API_BASE = "https://api.groq.com/openai/v1"
ANTHROPIC_API_BASE = "https://api.anthropic.com/v1"
GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
ANTHROPIC_VERSION = "2023-06-01"


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if value is None:
        return ""
    return json.dumps(value)


def flatten_arguments(arguments: Dict[str, Any]) -> Dict[str, str]:
    """
    Reduces a tool argument object to a flat string map.
    Nested objects are lifted one level, scalars are stringified (1.0 -> "1").
    """
    flat: Dict[str, str] = {}
    for key, value in arguments.items():
        if isinstance(value, dict):
            for inner_key, inner_value in value.items():
                flat.setdefault(inner_key, _stringify(inner_value))
        else:
            flat[key] = _stringify(value)
    return flat


def invocation_from_arguments(name: str, arguments: Any) -> ToolInvocation:
    """Builds a ToolInvocation from either a JSON string or an already decoded object."""
    if isinstance(arguments, dict):
        return ToolInvocation(name=name, arguments=flatten_arguments(arguments), raw_arguments=json.dumps(arguments))
    raw = arguments if isinstance(arguments, str) else ""
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        # Left for the parser's recovery tiers.
        return ToolInvocation(name=name, arguments={}, raw_arguments=raw)
    if not isinstance(decoded, dict):
        return ToolInvocation(name=name, arguments={}, raw_arguments=raw)
    return ToolInvocation(name=name, arguments=flatten_arguments(decoded), raw_arguments=raw)


class ProviderAdapter(ABC):
    """Base class for provider-specific request/response adapters"""

    provider_id = "base"

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    @abstractmethod
    def build_payload(self, request: ProviderRequest, config: ProviderConfig) -> Dict[str, Any]:
        """Convert a ProviderRequest into the provider's JSON body"""

    @abstractmethod
    def build_http_request(self, request: ProviderRequest, config: ProviderConfig) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return (url, headers, payload) for the native HTTP transport"""

    @abstractmethod
    def parse(self, body: Any) -> ProviderResponse:
        """Normalize a decoded provider reply into a ProviderResponse"""

    def _unrecognized(self, stop_reason: Optional[str]) -> ProviderResponse:
        self.console.print(f"[yellow]Warning: {self.provider_id} returned unexpected stop reason '{stop_reason}'. No tool call recovered.[/yellow]")
        return ProviderResponse(provider=self.provider_id, stop_reason=stop_reason)


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat-completions format. LiteLLM replies use this shape too."""

    provider_id = "openai"
    default_api_base = OPENAI_API_BASE

    def build_payload(self, request: ProviderRequest, config: ProviderConfig) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": config.model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "temperature": request.temperature,
            "max_tokens": config.max_output_tokens,
        }
        if request.tool:
            payload["tools"] = [request.tool]
            payload["tool_choice"] = {"type": "function", "function": {"name": request.tool_name}}
        return payload

    def build_http_request(self, request: ProviderRequest, config: ProviderConfig) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        base = (config.api_base or self.default_api_base).rstrip("/")
        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        return f"{base}/chat/completions", headers, self.build_payload(request, config)

    def parse(self, body: Any) -> ProviderResponse:
        if not isinstance(body, dict):
            raise ProviderError(f"{self.provider_id} reply is not a JSON object")
        if "error" in body and not body.get("choices"):
            error = body["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise ProviderError(f"{self.provider_id} error: {message}")
        choices = body.get("choices") or []
        if not choices:
            return self._unrecognized(None)

        choice = choices[0]
        finish_reason = choice.get("finish_reason")
        message = choice.get("message") or {}
        raw_tool_calls = message.get("tool_calls") or []
        text = message.get("content") or ""

        # A forced tool_choice reports "stop" with tool calls attached; "length" may carry cut-off arguments.
        if finish_reason == "tool_calls" or (finish_reason in ("stop", "length") and raw_tool_calls):
            invocations: List[ToolInvocation] = []
            for tool_call in raw_tool_calls:
                function = tool_call.get("function") or {}
                invocations.append(invocation_from_arguments(function.get("name", ""), function.get("arguments", "")))
            return ProviderResponse(provider=self.provider_id, stop_reason=finish_reason, tool_calls=invocations, text=text)
        if finish_reason in ("stop", "length"):
            return ProviderResponse(provider=self.provider_id, stop_reason=finish_reason, text=text)
        return self._unrecognized(finish_reason)


class GroqAdapter(OpenAIAdapter):
    """Groq is OpenAI-compatible; its arguments sometimes arrive as objects, handled by invocation_from_arguments."""

    provider_id = "groq"
    default_api_base = GROQ_API_BASE


class AnthropicAdapter(ProviderAdapter):
    """Anthropic messages API"""

    provider_id = "anthropic"

    @staticmethod
    def translate_tool(tool_def: Dict[str, Any]) -> Dict[str, Any]:
        function = tool_def["function"]
        return {
            "name": function["name"],
            "description": function.get("description", ""),
            "input_schema": function.get("parameters", {"type": "object", "properties": {}}),
        }

    def build_payload(self, request: ProviderRequest, config: ProviderConfig) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": config.model,
            "max_tokens": config.max_output_tokens,
            "temperature": request.temperature,
            "system": request.system_prompt,
            "messages": [{"role": "user", "content": request.user_prompt}],
        }
        if request.tool:
            payload["tools"] = [self.translate_tool(request.tool)]
            payload["tool_choice"] = {"type": "tool", "name": request.tool_name}
        return payload

    def build_http_request(self, request: ProviderRequest, config: ProviderConfig) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        base = (config.api_base or ANTHROPIC_API_BASE).rstrip("/")
        headers = {
            "Content-Type": "application/json",
            "x-api-key": config.api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
        }
        return f"{base}/messages", headers, self.build_payload(request, config)

    def parse(self, body: Any) -> ProviderResponse:
        if not isinstance(body, dict):
            raise ProviderError("anthropic reply is not a JSON object")
        if body.get("type") == "error":
            error = body.get("error") or {}
            raise ProviderError(f"anthropic error: {error.get('type', 'unknown')}: {error.get('message', '')}")

        stop_reason = body.get("stop_reason")
        blocks = body.get("content") or []
        text = "".join(block.get("text", "") for block in blocks if block.get("type") == "text")
        if stop_reason == "tool_use":
            invocations = [
                invocation_from_arguments(block.get("name", ""), block.get("input") or {})
                for block in blocks if block.get("type") == "tool_use"
            ]
            return ProviderResponse(provider=self.provider_id, stop_reason=stop_reason, tool_calls=invocations, text=text)
        if stop_reason in ("end_turn", "max_tokens", "stop_sequence"):
            return ProviderResponse(provider=self.provider_id, stop_reason=stop_reason, text=text)
        return self._unrecognized(stop_reason)


class GeminiAdapter(ProviderAdapter):
    """Google Generative Language API (generateContent)"""

    provider_id = "gemini"

    @classmethod
    def _upper_types(cls, schema: Any) -> Any:
        if isinstance(schema, dict):
            converted = {}
            for key, value in schema.items():
                if key == "type" and isinstance(value, str):
                    converted[key] = value.upper()
                else:
                    converted[key] = cls._upper_types(value)
            return converted
        if isinstance(schema, list):
            return [cls._upper_types(item) for item in schema]
        return schema

    @classmethod
    def translate_tool(cls, tool_def: Dict[str, Any]) -> Dict[str, Any]:
        function = tool_def["function"]
        return {
            "name": function["name"],
            "description": function.get("description", ""),
            "parameters": cls._upper_types(function.get("parameters", {})),
        }

    def build_payload(self, request: ProviderRequest, config: ProviderConfig) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "system_instruction": {"parts": [{"text": request.system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": request.user_prompt}]}],
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": config.max_output_tokens,
            },
        }
        if request.tool:
            payload["tools"] = [{"function_declarations": [self.translate_tool(request.tool)]}]
            payload["tool_config"] = {
                "function_calling_config": {"mode": "ANY", "allowed_function_names": [request.tool_name]}
            }
        return payload

    def build_http_request(self, request: ProviderRequest, config: ProviderConfig) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        base = (config.api_base or GEMINI_API_BASE).rstrip("/")
        url = f"{base}/models/{config.model}:generateContent?key={config.api_key or ''}"
        return url, {"Content-Type": "application/json"}, self.build_payload(request, config)

    def parse(self, body: Any) -> ProviderResponse:
        if not isinstance(body, dict):
            raise ProviderError("gemini reply is not a JSON object")
        if "error" in body:
            error = body["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise ProviderError(f"gemini error: {message}")
        candidates = body.get("candidates") or []
        if not candidates:
            block_reason = (body.get("promptFeedback") or {}).get("blockReason")
            return self._unrecognized(block_reason)

        candidate = candidates[0]
        finish_reason = candidate.get("finishReason")
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if "text" in part)
        calls = [part["functionCall"] for part in parts if "functionCall" in part]

        if finish_reason in ("STOP", "MAX_TOKENS") and calls:
            invocations = [invocation_from_arguments(call.get("name", ""), call.get("args") or {}) for call in calls]
            return ProviderResponse(provider=self.provider_id, stop_reason=finish_reason, tool_calls=invocations, text=text)
        if finish_reason in ("STOP", "MAX_TOKENS"):
            return ProviderResponse(provider=self.provider_id, stop_reason=finish_reason, text=text)
        return self._unrecognized(finish_reason)


class ProviderAdapterManager:
    """Manages provider-specific adapters"""

    def __init__(self, console: Optional[Console] = None):
        self.adapters: Dict[str, ProviderAdapter] = {
            "openai": OpenAIAdapter(console),
            "groq": GroqAdapter(console),
            "anthropic": AnthropicAdapter(console),
            "gemini": GeminiAdapter(console),
        }

    def get_adapter(self, provider_id: str) -> ProviderAdapter:
        try:
            return self.adapters[provider_id.lower()]
        except KeyError:
            raise ProviderError(f"Unsupported provider '{provider_id}'. Supported: {', '.join(self.adapters)}") from None
