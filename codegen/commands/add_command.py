# codegen/commands/add_command.py
from typing import TYPE_CHECKING
from pathlib import Path

from codegen.file_utils import normalize_path
from codegen.file_context_utils import add_directory_to_included_files, add_file_to_included_files

if TYPE_CHECKING:
    from codegen.app_state import AppState


def try_handle_add_command(user_input: str, app_state: 'AppState') -> bool:
    command_prefix = "/add"
    stripped_input = user_input.strip()

    if not stripped_input.lower().startswith(command_prefix.lower()):
        return False

    path_arg = stripped_input[len(command_prefix):].strip()

    if not path_arg:
        app_state.console.print("[yellow]Usage: /add <path/to/file_or_folder>[/yellow]")
        app_state.console.print(f"[dim]{len(app_state.included_files)} file(s) currently included.[/dim]")
        return True

    try:
        path_obj = Path(normalize_path(path_arg))

        if path_obj.is_file():
            add_file_to_included_files(str(path_obj), app_state.included_files, app_state.console, app_state.root)
        elif path_obj.is_dir():
            add_directory_to_included_files(str(path_obj), app_state.included_files, app_state.console, app_state.root)
        else:
            app_state.console.print(f"[red]Error: Path '{path_arg}' is not a valid file or directory.[/red]")
    except ValueError as e:  # Catches errors from normalize_path or other path issues
        app_state.console.print(f"[red]Error processing path '{path_arg}': {e}[/red]")

    return True
