# codegen/file_context_utils.py
import os
from pathlib import Path
from typing import Dict, List

from rich.console import Console

from codegen.config_utils import MAX_FILES_TO_PROCESS_IN_DIR, MAX_FILE_SIZE_BYTES
from codegen.file_utils import is_binary_file, normalize_path, read_local_file as util_read_local_file
from codegen.prompts import MEMORY_HEADER
from codegen.tool_defs import FIELD_CONTENT, FIELD_FILE_PATH

EXCLUDED_FILES = {
    ".DS_Store", "Thumbs.db", ".gitignore", ".python-version",
    "uv.lock", ".uv", "uvenv", ".uvenv", ".venv", "venv",
    "__pycache__", ".pytest_cache", ".coverage", ".mypy_cache",
    "node_modules", "package-lock.json", "yarn.lock", "pnpm-lock.yaml",
    ".next", ".nuxt", "dist", "build", ".cache", ".parcel-cache",
    "out", "coverage", ".nyc_output",
    ".env", ".env.local", ".env.development", ".env.production",
    ".git", ".svn", ".hg", ".codegen",
}
EXCLUDED_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".ico", ".svg", ".webp",
    ".mp4", ".webm", ".mov", ".mp3", ".wav", ".ogg",
    ".zip", ".tar", ".gz", ".7z", ".rar",
    ".exe", ".dll", ".so", ".dylib", ".bin",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx",
    ".pyc", ".pyo", ".pyd", ".egg", ".whl",
    ".db", ".sqlite", ".sqlite3", ".log", ".bak",
    ".map", ".min.js", ".min.css",
    ".ttf", ".otf", ".woff", ".woff2", ".eot",
    ".meta",
}


def snapshot_path(full_path: str, root: Path) -> str:
    """Project-relative posix path when the file lives under root, absolute path otherwise."""
    absolute = Path(normalize_path(full_path))
    try:
        return absolute.relative_to(Path(root).resolve()).as_posix()
    except ValueError:
        return absolute.as_posix()


def upsert_included_file(included_files: List[Dict[str, str]], file_path: str, content: str) -> bool:
    """Returns True when the file was new, False when an existing entry was refreshed."""
    for entry in included_files:
        if entry[FIELD_FILE_PATH] == file_path:
            entry[FIELD_CONTENT] = content
            return False
    included_files.append({FIELD_FILE_PATH: file_path, FIELD_CONTENT: content})
    return True


def add_file_to_included_files(file_path: str, included_files: List[Dict[str, str]], console: Console, root: Path) -> bool:
    try:
        normalized_path = normalize_path(file_path)
        if os.path.getsize(normalized_path) > MAX_FILE_SIZE_BYTES:
            console.print(f"[bold yellow]⚠[/bold yellow] Skipped '[bright_cyan]{file_path}[/bright_cyan]': exceeds size limit")
            return False
        if is_binary_file(normalized_path):
            console.print(f"[bold yellow]⚠[/bold yellow] Skipped '[bright_cyan]{file_path}[/bright_cyan]': binary file")
            return False
        content = util_read_local_file(normalized_path)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]✗[/bold red] Could not read file '[bright_cyan]{file_path}[/bright_cyan]': {e}")
        return False
    relative = snapshot_path(normalized_path, root)
    upsert_included_file(included_files, relative, content)
    console.print(f"[bold blue]✓[/bold blue] Included file '[bright_cyan]{relative}[/bright_cyan]'")
    return True


def add_directory_to_included_files(
    directory_path: str,
    included_files: List[Dict[str, str]],
    console: Console,
    root: Path,
):
    """
    Scans a directory and adds the content of eligible files to the project snapshot.
    """
    with console.status("[bold bright_blue]🔍 Scanning directory...[/bold bright_blue]") as status:
        skipped_files = []
        added_files = []
        total_files_processed = 0
        for walk_root, dirs, files in os.walk(directory_path):
            if total_files_processed >= MAX_FILES_TO_PROCESS_IN_DIR:
                console.print(f"[bold yellow]⚠[/bold yellow] Reached maximum file limit ({MAX_FILES_TO_PROCESS_IN_DIR})")
                break
            status.update(f"[bold bright_blue]🔍 Scanning {walk_root}...[/bold bright_blue]")
            dirs[:] = sorted(d for d in dirs if not d.startswith('.') and d not in EXCLUDED_FILES)
            for file in sorted(files):
                if total_files_processed >= MAX_FILES_TO_PROCESS_IN_DIR:
                    break
                full_path = os.path.join(walk_root, file)
                if file.startswith('.') or file in EXCLUDED_FILES:
                    skipped_files.append(full_path)
                    continue
                _, ext = os.path.splitext(file)
                if ext.lower() in EXCLUDED_EXTENSIONS:
                    skipped_files.append(full_path)
                    continue
                try:
                    if os.path.getsize(full_path) > MAX_FILE_SIZE_BYTES:
                        skipped_files.append(f"{full_path} (exceeds size limit)")
                        continue
                    if is_binary_file(full_path):
                        skipped_files.append(full_path)
                        continue
                    content = util_read_local_file(normalize_path(full_path))
                except (OSError, UnicodeDecodeError):
                    skipped_files.append(full_path)
                    continue
                except ValueError as e:
                    skipped_files.append(f"{full_path} (Invalid path: {e})")
                    continue
                relative = snapshot_path(full_path, root)
                upsert_included_file(included_files, relative, content)
                added_files.append(relative)
                total_files_processed += 1

    console.print(f"[bold blue]✓[/bold blue] Included folder '[bright_cyan]{directory_path}[/bright_cyan]'.")
    if added_files:
        console.print(f"\n[bold bright_blue]📁 Included files:[/bold bright_blue] [dim]({len(added_files)})[/dim]")
        for f_path in added_files:
            console.print(f"  [bright_cyan]📄 {f_path}[/bright_cyan]")
    if skipped_files:
        console.print(f"\n[bold yellow]⏭ Skipped files:[/bold yellow] [dim]({len(skipped_files)})[/dim]")
        for f_path in skipped_files[:10]:
            console.print(f"  [yellow dim]⚠ {f_path}[/yellow dim]")
        if len(skipped_files) > 10:
            console.print(f"  [dim]... and {len(skipped_files) - 10} more[/dim]")
    console.print()


def include_path(path: str, included_files: List[Dict[str, str]], console: Console, root: Path) -> bool:
    """Adds a single file or a whole folder to the snapshot."""
    if os.path.isdir(path):
        add_directory_to_included_files(path, included_files, console, root)
        return True
    return add_file_to_included_files(path, included_files, console, root)


def load_memory_files(paths: List[str], console: Console) -> str:
    """
    Concatenates memory files (usually markdown notes about the project) into the
    block appended to every system prompt. Unreadable files are skipped with a warning.
    """
    sections = []
    for path in paths:
        try:
            content = util_read_local_file(normalize_path(path))
        except (OSError, ValueError) as e:
            console.print(f"[yellow]Warning: Could not read memory file '{path}': {e}[/yellow]")
            continue
        sections.append(f"\n## {Path(path).name}:\n{content}\n")
    if not sections:
        return ""
    return MEMORY_HEADER + "".join(sections)
