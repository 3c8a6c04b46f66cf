# codegen/audit_log.py
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console


def _timestamp(with_millis: bool) -> str:
    now = datetime.now()
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S")
    if with_millis:
        stamp += f"-{now.microsecond // 1000:03d}"
    return stamp


class AuditLog:
    """
    Archives every prompt sent to a model and every raw reply received.
    Files: <prompts_dir>/prompt_<timestamp>.txt and <results_dir>/result_<agent>_<timestamp>.txt.
    A failing write only warns; auditing never aborts a pipeline run.
    """

    def __init__(self, results_dir: Path, prompts_dir: Path, enabled: bool = True, console: Optional[Console] = None):
        self.results_dir = Path(results_dir)
        self.prompts_dir = Path(prompts_dir)
        self.enabled = enabled
        self.console = console or Console()

    def _write(self, directory: Path, stem: str, text: str) -> Optional[Path]:
        target = directory / f"{stem}.txt"
        counter = 1
        while target.exists():
            target = directory / f"{stem}_{counter}.txt"
            counter += 1
        try:
            directory.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            self.console.print(f"[yellow]Warning: Could not write audit file '{target}': {e}[/yellow]")
            return None
        return target

    def save_prompt(self, system_prompt: str, user_prompt: str) -> Optional[Path]:
        if not self.enabled:
            return None
        text = f"# SYSTEM:\n{system_prompt}\n\n# USER:\n{user_prompt}\n"
        return self._write(self.prompts_dir, f"prompt_{_timestamp(with_millis=False)}", text)

    def save_result(self, agent_name: str, raw_text: str) -> Optional[Path]:
        if not self.enabled:
            return None
        return self._write(self.results_dir, f"result_{agent_name}_{_timestamp(with_millis=True)}", raw_text)
