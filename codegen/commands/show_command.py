# codegen/commands/show_command.py
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from codegen.app_state import AppState

from codegen.ui_display import display_config_table, display_included_files, display_welcome_panel


def try_handle_show_command(user_input: str, app_state: 'AppState') -> bool:
    """
    Handles the /show command.
        /show welcome - Displays the welcome panel.
        /show config  - Displays the effective value of every setting.
        /show files   - Lists the files of the project snapshot.
    """
    parts = user_input.lower().strip().split()
    if not parts or parts[0] != "/show":
        return False

    if len(parts) == 1:
        app_state.console.print("[yellow]Usage: /show <welcome|config|files>[/yellow]")
    elif parts[1] == "welcome":
        display_welcome_panel(app_state)
    elif parts[1] == "config":
        display_config_table(app_state)
    elif parts[1] == "files":
        display_included_files(app_state)
    else:
        app_state.console.print(f"[yellow]Unknown argument for /show: '{parts[1]}'. Try '/show config'.[/yellow]")
    return True
