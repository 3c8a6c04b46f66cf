# codegen/file_utils.py
import os
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from codegen.data_models import FileArtifact
from codegen.errors import CommitError

DRIVE_PREFIX_PATTERN = re.compile(r"^[A-Za-z]:[\\/]")


def normalize_path(path_str: str) -> str:
    """Return a canonical, absolute version of the path with security checks."""
    try:
        if not path_str:
            raise ValueError("Path cannot be empty.")
        expanded_path = Path(path_str).expanduser()
        if ".." in expanded_path.parts:
            raise ValueError(f"Invalid path: {path_str} contains parent directory references")
        resolved_path = expanded_path.resolve()
        return str(resolved_path)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid path: \"{path_str}\". Error: {e}") from e


def is_binary_file(file_path: str, peek_size: int = 1024) -> bool:
    """Checks if a file is likely binary by looking for null bytes."""
    try:
        with open(file_path, 'rb') as f:
            chunk = f.read(peek_size)
        return b'\0' in chunk
    except OSError:
        return True  # Err on the side of caution


def read_local_file(file_path: str) -> str:
    """Return the text content of a local file.
    Raises FileNotFoundError or OSError on issues.
    """
    with open(file_path, "r", encoding="utf-8") as f:
        return f.read()


def strip_colons(path: str) -> str:
    """Models like to write 'File: a/b.py'; colons never belong in a path except after a drive letter."""
    if DRIVE_PREFIX_PATTERN.match(path):
        return path[:2] + path[2:].replace(":", "")
    return path.replace(":", "")


def normalize_line_endings(content: str, line_ending: str = os.linesep) -> str:
    return content.replace("\r\n", "\n").replace("\r", "\n").replace("\n", line_ending)


class CommitWriter:
    """
    The only component that touches the filesystem.
    Any file already at the target path is copied to the backup folder before
    it is overwritten; a backup is never overwritten itself.
    """

    def __init__(
        self,
        root: Path,
        backup_dir: Path,
        console_obj,
        max_file_size_bytes: int,
        line_ending: str = os.linesep,
    ):
        self.root = Path(root).resolve()
        backup_path = Path(backup_dir)
        self.backup_dir = backup_path if backup_path.is_absolute() else self.root / backup_path
        self.console = console_obj
        self.max_file_size_bytes = max_file_size_bytes
        self.line_ending = line_ending

    def target_path(self, file_path: str) -> Path:
        """Maps an artifact path to an absolute path inside the project root. Raises CommitError."""
        cleaned = strip_colons(file_path.strip())
        if not cleaned:
            raise CommitError("Empty file path", file_path)
        candidate = Path(cleaned.replace("\\", "/")).expanduser()
        if ".." in candidate.parts:
            raise CommitError("Path contains parent directory references", file_path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise CommitError(f"Path escapes the project root '{self.root}'", file_path)
        return resolved

    def backup_path_for(self, target: Path) -> Path:
        relative_dir = target.parent.relative_to(self.root)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        backup = self.backup_dir / relative_dir / f"{target.name}.{stamp}.bak"
        counter = 1
        while backup.exists():
            backup = self.backup_dir / relative_dir / f"{target.name}.{stamp}.{counter}.bak"
            counter += 1
        return backup

    def backup(self, target: Path) -> Optional[Path]:
        """Copies the current file to the backup folder. Returns None when there is nothing to back up."""
        if not target.is_file():
            return None
        backup = self.backup_path_for(target)
        try:
            backup.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(target, backup)
        except OSError as e:
            self.console.print(f"[bold red]✗[/bold red] Could not back up '[bright_cyan]{target}[/bright_cyan]': {e}")
            raise CommitError(f"Backup failed, file left untouched: {e}", str(target)) from e
        self.console.print(f"[dim]Backup saved to '{backup}'.[/dim]")
        return backup

    def commit(self, artifact: FileArtifact, on_written: Optional[Callable[[FileArtifact], None]] = None) -> Path:
        """Backs up, normalizes and writes one artifact. Raises CommitError on failure."""
        target = self.target_path(artifact.file_path)

        try:
            size = len(artifact.content.encode("utf-8"))
        except UnicodeError as e:
            err_msg = f"Content of '{artifact.file_path}' is not valid UTF-8: {e}"
            self.console.print(f"[bold red]✗[/bold red] {err_msg}")
            raise CommitError(err_msg, artifact.file_path) from e
        if size > self.max_file_size_bytes:
            err_msg = f"File content exceeds the {self.max_file_size_bytes} byte size limit"
            self.console.print(f"[bold red]✗[/bold red] {err_msg}")
            raise CommitError(err_msg, artifact.file_path)

        self.backup(target)
        content = normalize_line_endings(artifact.content, self.line_ending)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # newline="" keeps the already normalized line endings as they are.
            with open(target, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except (OSError, UnicodeError) as e:
            err_msg = f"Failed to write file '{target}': {e}"
            self.console.print(f"[bold red]✗[/bold red] {err_msg}")
            raise CommitError(err_msg, artifact.file_path) from e

        self.console.print(f"[bold blue]✓[/bold blue] Created/updated file at '[bright_cyan]{target}[/bright_cyan]'")
        if on_written:
            on_written(artifact)
        return target
