# codegen/transport.py
"""
Transports move one request to a provider and hand back a RawReply.
They never interpret the body beyond JSON decoding; that is the adapters' job.
"""
import json
from typing import Any, Dict, Optional

import httpx
import litellm

from codegen.data_models import ProviderConfig, ProviderRequest, RawReply
from codegen.errors import ProviderError
from codegen.provider_adapters import OpenAIAdapter, ProviderAdapter

litellm.suppress_debug_info = True


class HttpTransport:
    """Talks to each provider's native REST endpoint with httpx."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    async def send(self, adapter: ProviderAdapter, request: ProviderRequest, config: ProviderConfig) -> RawReply:
        url, headers, payload = adapter.build_http_request(request, config)
        if self._client is not None:
            response = await self._client.post(url, headers=headers, json=payload, timeout=config.timeout)
        else:
            async with httpx.AsyncClient(timeout=config.timeout) as client:
                response = await client.post(url, headers=headers, json=payload)
        try:
            body = response.json()
        except json.JSONDecodeError:
            body = None
        return RawReply(status_code=response.status_code, body=body, text=response.text)


class LiteLLMTransport:
    """
    Routes every provider through litellm.acompletion.
    Replies come back in OpenAI shape, so they are parsed by the OpenAI adapter
    whatever the configured provider is.
    """

    def __init__(self):
        self.reply_adapter = OpenAIAdapter()

    @staticmethod
    def model_name(config: ProviderConfig) -> str:
        if "/" in config.model:
            return config.model
        return f"{config.provider}/{config.model}"

    async def send(self, adapter: ProviderAdapter, request: ProviderRequest, config: ProviderConfig) -> RawReply:
        completion_params: Dict[str, Any] = {
            "model": self.model_name(config),
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "temperature": request.temperature,
            "max_tokens": config.max_output_tokens,
            "timeout": config.timeout,
        }
        if config.api_key:
            completion_params["api_key"] = config.api_key
        if config.api_base:
            completion_params["api_base"] = config.api_base
        if request.tool:
            completion_params["tools"] = [request.tool]
            completion_params["tool_choice"] = {"type": "function", "function": {"name": request.tool_name}}

        try:
            response = await litellm.acompletion(**completion_params)
        except litellm.AuthenticationError as e:
            return RawReply(status_code=401, text=str(e))
        except litellm.BadRequestError as e:
            return RawReply(status_code=400, text=str(e))
        except litellm.RateLimitError as e:
            return RawReply(status_code=429, text=str(e))
        except litellm.ServiceUnavailableError as e:
            return RawReply(status_code=503, text=str(e))
        except (litellm.Timeout, litellm.APIConnectionError, litellm.APIError) as e:
            raise ProviderError(f"LiteLLM call to {completion_params['model']} failed: {e}") from e

        body = response.model_dump() if hasattr(response, "model_dump") else dict(response)
        return RawReply(status_code=200, body=body, text=json.dumps(body, default=str))


def build_transport(name: str):
    if name == "litellm":
        return LiteLLMTransport()
    return HttpTransport()
