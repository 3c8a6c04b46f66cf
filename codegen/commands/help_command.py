# codegen/commands/help_command.py
from typing import TYPE_CHECKING
from textwrap import dedent

from rich.markdown import Markdown as RichMarkdown
from rich.panel import Panel
from rich.table import Table

from codegen.config_utils import SUPPORTED_SET_PARAMS

if TYPE_CHECKING:
    from codegen.app_state import AppState

HELP_TEXT = dedent("""\
    ## Workflow
    1. `/add <file|folder>` the code the model should see (the project snapshot).
    2. Optionally `/memory <notes.md|folder>` to append project notes to every prompt.
    3. Type the task in plain words. After confirmation the task is split into single-file
       tasks, each file is written by the model, merged with the existing code when it is
       modified, and saved to disk. Overwritten files are backed up first.

    ## Commands
    - `/add <path>` include a file or folder in the snapshot (`/add` alone shows the count)
    - `/memory [path|clear]` list, add or clear memory files
    - `/set <param> <value>` override a setting for this session (`/set <param> default` removes it)
    - `/show [config|files]` show the effective configuration or the included files
    - `/debug <on|off>` dump every request and raw reply to stderr
    - `/help set` list every settable parameter
    - `exit` or `quit` leave
    """)


def _settable_params_table() -> Table:
    table = Table(title="Settable parameters", show_lines=False, title_justify="left")
    table.add_column("Parameter", style="bright_cyan", no_wrap=True)
    table.add_column("Env var", style="dim")
    table.add_column("Description")
    for name, details in SUPPORTED_SET_PARAMS.items():
        table.add_row(name, details.get("env_var", ""), details.get("description", ""))
    return table


def try_handle_help_command(user_input: str, app_state: 'AppState') -> bool:
    command_prefix = "/help"
    stripped_input = user_input.strip()

    if not stripped_input.lower().startswith(command_prefix.lower()):
        return False

    arg_text = stripped_input[len(command_prefix):].strip().lower()
    if arg_text == "set":
        app_state.console.print(_settable_params_table())
        return True
    if arg_text:
        app_state.console.print(f"[yellow]Warning: Unknown help topic '{arg_text}'. Showing default help page.[/yellow]")

    app_state.console.print(Panel(
        RichMarkdown(HELP_TEXT), title="[bold blue]📚 AI Codegen Help[/bold blue]", title_align="left", border_style="blue"
    ))
    return True
