# codegen/commands/debug_command.py
from typing import TYPE_CHECKING

from codegen.config_utils import get_config_value

if TYPE_CHECKING:
    from codegen.app_state import AppState


def try_handle_debug_command(user_input: str, app_state: 'AppState') -> bool:
    """
    /debug on|off toggles the stderr dump of every provider payload and raw reply.
    The audit folders are written regardless of this switch.
    """
    command_prefix = "/debug"
    stripped_input = user_input.strip().lower()

    if not stripped_input.startswith(command_prefix):
        return False

    parts = stripped_input.split()
    if len(parts) == 1:
        app_state.console.print("[yellow]Usage: /debug <on|off>[/yellow]")
        app_state.console.print(f"[dim]Current LLM interaction debug mode: {'ON' if app_state.DEBUG_LLM_INTERACTIONS else 'OFF'}[/dim]")
        return True

    action = parts[1]
    if len(parts) == 2 and action == "on":
        app_state.DEBUG_LLM_INTERACTIONS = True
        app_state.console.print("[green]✓ LLM Interaction Debugging: ON[/green]")
        if get_config_value("audit_enabled", app_state.RUNTIME_OVERRIDES):
            results_dir = app_state.root / get_config_value("results_dir", app_state.RUNTIME_OVERRIDES)
            app_state.console.print(f"[dim]Raw replies are also archived in '{results_dir}'.[/dim]")
    elif len(parts) == 2 and action == "off":
        app_state.DEBUG_LLM_INTERACTIONS = False
        app_state.console.print("[yellow]✓ LLM Interaction Debugging: OFF[/yellow]")
    else:
        app_state.console.print(f"[yellow]Unknown /debug action: {' '.join(parts[1:])}. Usage: /debug <on|off>[/yellow]")
    return True
