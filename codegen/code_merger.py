# codegen/code_merger.py
from typing import Optional

from rich.console import Console

from codegen.data_models import FileArtifact, ProviderConfig, ProviderRequest, TaskKind, WorkItem
from codegen.errors import MergeError, MergeTargetMissingError
from codegen.llm_interaction import ProviderGateway
from codegen.output_parser import StructuredOutputParser
from codegen.prompts import MERGE_CODE_SYSTEM_PROMPT, MERGE_USER_TEMPLATE
from codegen.snapshot import ProjectSnapshot
from codegen.tool_defs import TOOL_NAME_MERGE_CODE, get_tool


class ReconcilerAndMerger:
    """
    Maps the synthesized artifact onto the real project tree.

    Modify items whose target exists are merged with the old content by a
    dedicated model call; the merge result is final. Create items never merge.
    """

    def __init__(self, gateway: ProviderGateway, parser: StructuredOutputParser, config: ProviderConfig, temperature: float, console: Console):
        self.gateway = gateway
        self.parser = parser
        self.config = config
        self.temperature = temperature
        self.console = console

    def resolve_path(self, item: WorkItem, artifact: FileArtifact, snapshot: ProjectSnapshot) -> Optional[str]:
        resolved = snapshot.resolve(artifact.file_path)
        if resolved is None and artifact.file_path != item.file_path:
            resolved = snapshot.resolve(item.file_path)
        return resolved

    def build_request(self, resolved_path: str, old_code: str, new_code: str) -> ProviderRequest:
        return ProviderRequest(
            system_prompt=MERGE_CODE_SYSTEM_PROMPT,
            user_prompt=MERGE_USER_TEMPLATE.format(file_path=resolved_path, old_code=old_code, new_code=new_code),
            temperature=self.temperature,
            tool=get_tool(TOOL_NAME_MERGE_CODE),
            agent_name="CodeMerger",
        )

    async def reconcile(self, item: WorkItem, artifact: FileArtifact, snapshot: ProjectSnapshot) -> FileArtifact:
        resolved = self.resolve_path(item, artifact, snapshot)

        if item.kind == TaskKind.CREATE:
            if resolved and resolved != artifact.file_path:
                self.console.print(f"[dim]Path '{artifact.file_path}' resolved to '{resolved}'.[/dim]")
            return artifact.with_path(resolved or artifact.file_path)

        if resolved is None:
            raise MergeTargetMissingError("Merge target is not part of the project snapshot; refusing to overwrite blindly", artifact.file_path)

        old_code = snapshot[resolved]
        if not old_code.strip():
            raise MergeError("No old content available to merge with", resolved)

        self.console.print(f"[dim]Merging new code into {resolved}...[/dim]")
        request = self.build_request(resolved, old_code, artifact.content)
        response = await self.gateway.submit(request, self.config)

        result = await self.parser.parse_artifacts(response, path_hint=resolved)
        merged = result.artifacts()[0]
        if not merged.content.strip():
            raise MergeError("Merge produced empty content", resolved)
        # The canonical path wins over whatever the model echoed back.
        return merged.with_path(resolved)
