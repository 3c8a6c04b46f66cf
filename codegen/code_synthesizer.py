# codegen/code_synthesizer.py
from rich.console import Console

from codegen.data_models import FileArtifact, ProviderConfig, ProviderRequest, TaskKind, WorkItem
from codegen.errors import ParseError
from codegen.llm_interaction import ProviderGateway
from codegen.output_parser import StructuredOutputParser
from codegen.prompts import (
    ARCHITECT_SYSTEM_PROMPT, CREATE_FILE_USER_TEMPLATE, MODIFY_FILE_USER_TEMPLATE,
    PROJECT_CODE_SYSTEM_TEMPLATE, with_memory
)
from codegen.snapshot import ProjectSnapshot
from codegen.tool_defs import TOOL_NAME_REPLACE_SCRIPT_FILE, get_tool


class CodeSynthesizer:
    """Produces the FULL content of one file for one work item."""

    def __init__(
        self,
        gateway: ProviderGateway,
        parser: StructuredOutputParser,
        config: ProviderConfig,
        temperature: float,
        console: Console,
        system_prompt_text: str = "",
    ):
        self.gateway = gateway
        self.parser = parser
        self.config = config
        self.temperature = temperature
        self.console = console
        self.system_prompt_text = system_prompt_text or ARCHITECT_SYSTEM_PROMPT

    def build_request(
        self, task: str, item: WorkItem, snapshot: ProjectSnapshot, memory_text: str = "", system_prompt_text: str = ""
    ) -> ProviderRequest:
        prompt = system_prompt_text or self.system_prompt_text
        if item.kind == TaskKind.MODIFY:
            system_prompt = PROJECT_CODE_SYSTEM_TEMPLATE.format(prompt=prompt, code=snapshot.to_json())
            user_prompt = MODIFY_FILE_USER_TEMPLATE.format(file_path=item.file_path, task=task)
        else:
            system_prompt = prompt
            user_prompt = CREATE_FILE_USER_TEMPLATE.format(file_path=item.file_path, task=task)
        return ProviderRequest(
            system_prompt=with_memory(system_prompt, memory_text),
            user_prompt=user_prompt,
            temperature=self.temperature,
            tool=get_tool(TOOL_NAME_REPLACE_SCRIPT_FILE),
            agent_name="CodeSynthesizer",
        )

    async def synthesize(
        self, task: str, item: WorkItem, snapshot: ProjectSnapshot, memory_text: str = "", system_prompt_text: str = ""
    ) -> FileArtifact:
        """An empty system_prompt_text falls back to the prompt this synthesizer was built with."""
        action = "Modifying" if item.kind == TaskKind.MODIFY else "Creating"
        self.console.print(f"[dim]{action} {item.file_path}...[/dim]")
        request = self.build_request(task, item, snapshot, memory_text, system_prompt_text)
        response = await self.gateway.submit(request, self.config)

        result = await self.parser.parse_artifacts(response, path_hint=item.file_path)
        artifact = result.artifacts()[0]
        if len(result.records) > 1:
            self.console.print(f"[yellow]Warning: Model returned {len(result.records)} files for '{item.file_path}'. Using the first one.[/yellow]")
        if not artifact.content.strip():
            raise ParseError("Model returned empty content", item.file_path)
        if not artifact.file_path.strip():
            artifact = artifact.with_path(item.file_path)
        return artifact
