# codegen/commands/memory_command.py
from typing import TYPE_CHECKING
from pathlib import Path

from codegen.file_utils import normalize_path

if TYPE_CHECKING:
    from codegen.app_state import AppState


def try_handle_memory_command(user_input: str, app_state: 'AppState') -> bool:
    """
    /memory                 - list the selected memory files
    /memory <path>          - add a memory file (or every .md file of a folder)
    /memory clear           - deselect all memory files
    """
    command_prefix = "/memory"
    stripped_input = user_input.strip()

    if not stripped_input.lower().startswith(command_prefix):
        return False

    arg = stripped_input[len(command_prefix):].strip()

    if not arg:
        if not app_state.memory_files:
            app_state.console.print("[dim]No memory files selected. Usage: /memory <path/to/notes.md | folder | clear>[/dim]")
            return True
        app_state.console.print("[bold blue]Memory files:[/bold blue]")
        for memory_path in app_state.memory_files:
            app_state.console.print(f"  [bright_cyan]📄 {memory_path}[/bright_cyan]")
        return True

    if arg.lower() == "clear":
        app_state.memory_files.clear()
        app_state.console.print("[yellow]✓ Memory files cleared.[/yellow]")
        return True

    try:
        path_obj = Path(normalize_path(arg))
    except ValueError as e:
        app_state.console.print(f"[red]Error processing path '{arg}': {e}[/red]")
        return True

    if path_obj.is_dir():
        candidates = sorted(str(p) for p in path_obj.glob("*.md"))
    elif path_obj.is_file():
        candidates = [str(path_obj)]
    else:
        app_state.console.print(f"[red]Error: Path '{arg}' is not a valid file or directory.[/red]")
        return True

    added = [c for c in candidates if c not in app_state.memory_files]
    app_state.memory_files.extend(added)
    app_state.console.print(f"[green]✓ Added {len(added)} memory file(s).[/green]")
    return True
