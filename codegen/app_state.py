# codegen/app_state.py
from pathlib import Path
from typing import Any, Dict, List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.styles import Style as PromptStyle
from rich.console import Console


class AppState:
    def __init__(self, root: Optional[Path] = None, console: Optional[Console] = None, prompt_session: Optional[PromptSession] = None):
        self.console = console or Console()
        self.prompt_session = prompt_session or PromptSession(
            style=PromptStyle.from_dict({
                'prompt': '#0066ff bold',
                'completion-menu.completion': 'bg:#1e3a8a fg:#ffffff',
                'completion-menu.completion.current': 'bg:#3b82f6 fg:#ffffff bold',
            })
        )
        self.root: Path = Path(root or Path.cwd()).resolve()
        # The project snapshot sent with every task: [{"FilePath": ..., "Content": ...}]
        self.included_files: List[Dict[str, str]] = []
        self.memory_files: List[str] = []
        self.system_prompt_path: Optional[str] = None
        self.DEBUG_LLM_INTERACTIONS: bool = False
        self.RUNTIME_OVERRIDES: Dict[str, Any] = {}
