# codegen/llm_interaction.py
import json
from typing import Any, Callable, Dict, Optional

import httpx
from rich.console import Console
from rich.json import JSON as RichJSON

from codegen.audit_log import AuditLog
from codegen.config_utils import downgrade_model, get_model_max_output_tokens
from codegen.data_models import ProviderConfig, ProviderRequest, ProviderResponse
from codegen.errors import AuthError, ProviderError
from codegen.provider_adapters import ProviderAdapterManager
from codegen.transport import build_transport

AUTH_FAILURE_STATUSES = {400: "400 Bad Request", 401: "401 Unauthorized", 403: "403 Forbidden"}
RETRYABLE_STATUSES = (429, 503)


class ProviderGateway:
    """
    The single door to every language model.
    Builds the provider request through the matching adapter, sends it through
    the configured transport and returns a normalized ProviderResponse.
    """

    def __init__(
        self,
        console: Console,
        audit_log: Optional[AuditLog] = None,
        transports: Optional[Dict[str, Any]] = None,
        adapter_manager: Optional[ProviderAdapterManager] = None,
        allow_downgrade: bool = True,
        debug: bool = False,
    ):
        self.console = console
        self.audit_log = audit_log
        self.transports: Dict[str, Any] = dict(transports or {})
        self.adapter_manager = adapter_manager or ProviderAdapterManager(console)
        self.allow_downgrade = allow_downgrade
        self.debug = debug

    def _get_transport(self, name: str):
        if name not in self.transports:
            self.transports[name] = build_transport(name)
        return self.transports[name]

    def _debug_dump(self, title: str, data: Any):
        if not self.debug:
            return
        Console(stderr=True).print(f"[dim bold red]LLM DEBUG: {title}[/dim bold red]")
        try:
            Console(stderr=True).print(RichJSON(json.dumps(data, indent=2, default=str)))
        except (TypeError, ValueError) as e:
            Console(stderr=True).print(f"[dim red]LLM DEBUG: Could not serialize for debug: {e}[/dim red]")

    async def submit(
        self,
        request: ProviderRequest,
        config: ProviderConfig,
        on_response: Optional[Callable[[ProviderResponse], None]] = None,
        on_failure: Optional[Callable[[str], None]] = None,
    ) -> Optional[ProviderResponse]:
        """
        Sends one request. 400/401/403 short-circuit: on_failure(reason) and None
        when a callback is given, AuthError otherwise. 429/503 walk down the
        model downgrade chain. Any other non-2xx status raises ProviderError.
        """
        current = config
        while True:
            adapter = self.adapter_manager.get_adapter(current.provider)
            transport = self._get_transport(current.transport)

            if self.audit_log:
                self.audit_log.save_prompt(request.system_prompt, request.user_prompt)
            self._debug_dump(
                f"Request ({current.provider}/{current.model}, agent={request.agent_name})",
                adapter.build_payload(request, current),
            )

            try:
                reply = await transport.send(adapter, request, current)
            except httpx.HTTPError as e:
                raise ProviderError(f"Transport failure talking to {current.provider}: {e}") from e

            if self.audit_log:
                self.audit_log.save_result(request.agent_name, reply.text)
            self._debug_dump(f"Raw reply (HTTP {reply.status_code})", reply.body if reply.body is not None else reply.text)

            if reply.status_code in AUTH_FAILURE_STATUSES:
                error = AuthError(reply.text[:500] or AUTH_FAILURE_STATUSES[reply.status_code], provider=current.provider, status_code=reply.status_code)
                self.console.print(f"[bold red]✗ {error.reason}[/bold red]")
                if on_failure:
                    on_failure(error.reason)
                    return None
                raise error

            if reply.status_code in RETRYABLE_STATUSES and self.allow_downgrade:
                next_model = downgrade_model(current.model)
                if next_model:
                    self.console.print(f"[yellow]Warning: {current.model} answered HTTP {reply.status_code}. Retrying with {next_model}.[/yellow]")
                    current = current.model_copy(update={"model": next_model, "max_output_tokens": get_model_max_output_tokens(next_model)})
                    continue

            if not 200 <= reply.status_code < 300:
                raise ProviderError(f"HTTP {reply.status_code} from {current.provider}/{current.model}: {reply.text[:500]}")

            parse_adapter = getattr(transport, "reply_adapter", adapter)
            response = parse_adapter.parse(reply.body)
            if response.provider != current.provider:
                response = response.model_copy(update={"provider": current.provider})
            if on_response:
                on_response(response)
            return response
