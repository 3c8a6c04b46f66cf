# codegen/task_splitter.py
from typing import List, Optional, Set, Tuple

from rich.console import Console

from codegen.data_models import ProviderConfig, ProviderRequest, TaskKind, WorkItem
from codegen.errors import ParseError, PathResolutionError, TaskSplitError
from codegen.llm_interaction import ProviderGateway
from codegen.output_parser import StructuredOutputParser
from codegen.prompts import SPLIT_TASK_SYSTEM_PROMPT, SPLIT_TASK_USER_TEMPLATE, with_memory
from codegen.snapshot import ProjectSnapshot, normalize_key
from codegen.tool_defs import (
    FIELD_FILE_PATH, FIELD_TASK_ID, TOOL_NAME_SPLIT_TASK_TO_SINGLE_FILES, get_tool, required_fields
)


def parse_task_id(raw: str) -> Optional[TaskKind]:
    """Accepts "0", "1" and float spellings like "1.0"; anything else is None."""
    try:
        number = float(str(raw).strip())
    except ValueError:
        return None
    if not number.is_integer():
        return None
    try:
        return TaskKind(int(number))
    except ValueError:
        return None


class TaskSplitter:
    """Asks the model which files the task touches and whether each one is modified or created."""

    def __init__(self, gateway: ProviderGateway, parser: StructuredOutputParser, config: ProviderConfig, temperature: float, console: Console):
        self.gateway = gateway
        self.parser = parser
        self.config = config
        self.temperature = temperature
        self.console = console

    def build_request(self, task: str, snapshot: ProjectSnapshot, memory_text: str = "") -> ProviderRequest:
        return ProviderRequest(
            system_prompt=with_memory(SPLIT_TASK_SYSTEM_PROMPT, memory_text),
            user_prompt=SPLIT_TASK_USER_TEMPLATE.format(task=task, code=snapshot.to_json()),
            temperature=self.temperature,
            tool=get_tool(TOOL_NAME_SPLIT_TASK_TO_SINGLE_FILES),
            agent_name="TaskSplitter",
        )

    async def split(self, task: str, snapshot: ProjectSnapshot, memory_text: str = "") -> List[WorkItem]:
        self.console.print("[dim]Splitting the task into single-file tasks...[/dim]")
        request = self.build_request(task, snapshot, memory_text)
        response = await self.gateway.submit(request, self.config)
        if response.is_empty:
            if response.stop_reason:
                raise TaskSplitError(f"Unexpected response stop reason: {response.stop_reason}")
            raise TaskSplitError("No file tasks received")

        try:
            result = await self.parser.parse_records(response, required_fields(request.tool))
        except ParseError as e:
            raise TaskSplitError(f"No file tasks received ({e.message})") from e

        items: List[WorkItem] = []
        seen: Set[Tuple[str, TaskKind]] = set()
        for record in result.records:
            file_path = record[FIELD_FILE_PATH].strip()
            kind = parse_task_id(record[FIELD_TASK_ID])
            if not file_path or kind is None:
                self.console.print(f"[yellow]Warning: Skipping file task with unknown TaskId '{record[FIELD_TASK_ID]}' for '{file_path}'.[/yellow]")
                continue
            try:
                resolved = snapshot.resolve(file_path)
            except PathResolutionError:
                # Ambiguity is reported later, by the merger.
                resolved = None
            key = (normalize_key(resolved or file_path), kind)
            if key in seen:
                continue
            seen.add(key)
            items.append(WorkItem(file_path=file_path, kind=kind))

        if not items:
            raise TaskSplitError("No file tasks received")
        self.console.print(f"[bold blue]✓[/bold blue] {len(items)} file task(s) received.")
        return items
