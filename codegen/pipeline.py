# codegen/pipeline.py
import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field
from rich.console import Console

from codegen.audit_log import AuditLog
from codegen.code_merger import ReconcilerAndMerger
from codegen.code_synthesizer import CodeSynthesizer
from codegen.config_utils import MAX_FILE_SIZE_BYTES, get_config_value, get_provider_config, get_temperature
from codegen.data_models import FileArtifact, WorkItem
from codegen.errors import AuthError, PipelineError
from codegen.file_utils import CommitWriter
from codegen.llm_interaction import ProviderGateway
from codegen.output_parser import StructuredOutputParser
from codegen.snapshot import ProjectSnapshot
from codegen.task_splitter import TaskSplitter


class PipelineReport(BaseModel):
    work_items: List[WorkItem] = Field(default_factory=list)
    committed: List[str] = Field(default_factory=list)
    # work item path -> path actually written
    written: Dict[str, str] = Field(default_factory=dict)
    failures: List[str] = Field(default_factory=list)
    aborted: bool = False
    stopped: bool = False

    @property
    def succeeded(self) -> bool:
        return bool(self.committed) and not self.failures


class CodeGenerationPipeline:
    """
    Task -> work items -> full file content -> reconciled/merged artifact -> disk.

    Work items run one after the other with a cooldown in between. An AuthError
    stops the whole queue; any other failure only aborts its own file, unless
    continue_on_error is off.
    """

    def __init__(
        self,
        console: Console,
        splitter: TaskSplitter,
        synthesizer: CodeSynthesizer,
        merger: ReconcilerAndMerger,
        writer: CommitWriter,
        cooldown_seconds: float = 1.0,
        continue_on_error: bool = True,
    ):
        self.console = console
        self.splitter = splitter
        self.synthesizer = synthesizer
        self.merger = merger
        self.writer = writer
        self.cooldown_seconds = cooldown_seconds
        self.continue_on_error = continue_on_error
        self._stop_requested = False

    @classmethod
    def from_config(
        cls,
        console: Console,
        root: Path,
        runtime_overrides: Dict[str, Any],
        debug: bool = False,
        transports: Optional[Dict[str, Any]] = None,
    ) -> "CodeGenerationPipeline":
        """Wires every component from the layered configuration (see config_utils)."""
        root = Path(root)

        def setting(name: str) -> Any:
            return get_config_value(name, runtime_overrides, console)

        audit_log = AuditLog(
            results_dir=root / setting("results_dir"),
            prompts_dir=root / setting("prompts_dir"),
            enabled=bool(setting("audit_enabled")),
            console=console,
        )
        gateway = ProviderGateway(
            console,
            audit_log=audit_log,
            transports=transports,
            allow_downgrade=bool(setting("allow_model_downgrade")),
            debug=debug,
        )
        parser = StructuredOutputParser(
            console,
            gateway=gateway,
            reformat_config=get_provider_config("reformatter", runtime_overrides, console),
            reformat_temperature=get_temperature("reformatter", runtime_overrides, console),
        )

        def agent_args(role: str):
            return (
                gateway,
                parser,
                get_provider_config(role, runtime_overrides, console),
                get_temperature(role, runtime_overrides, console),
                console,
            )

        return cls(
            console,
            splitter=TaskSplitter(*agent_args("splitter")),
            synthesizer=CodeSynthesizer(*agent_args("coder")),
            merger=ReconcilerAndMerger(*agent_args("merger")),
            writer=CommitWriter(root, Path(setting("backup_dir")), console, MAX_FILE_SIZE_BYTES),
            cooldown_seconds=float(setting("cooldown_seconds")),
            continue_on_error=bool(setting("continue_on_error")),
        )

    def stop(self):
        """Lets the item in flight finish, then schedules nothing more."""
        self._stop_requested = True

    def _fail(self, report: PipelineReport, reason: str, on_failure: Optional[Callable[[str], None]]):
        report.failures.append(reason)
        self.console.print(f"[bold red]✗ {reason}[/bold red]")
        if on_failure:
            on_failure(reason)

    async def run(
        self,
        task: str,
        included_files: List[Dict[str, Any]],
        system_prompt_text: str = "",
        memory_text: str = "",
        on_commit: Optional[Callable[[FileArtifact], None]] = None,
        on_failure: Optional[Callable[[str], None]] = None,
    ) -> PipelineReport:
        self._stop_requested = False
        report = PipelineReport()
        snapshot = ProjectSnapshot.from_included_files(included_files)

        try:
            items = await self.splitter.split(task, snapshot, memory_text)
        except AuthError as e:
            report.aborted = True
            self._fail(report, e.reason, on_failure)
            return report
        except PipelineError as e:
            self._fail(report, e.reason, on_failure)
            return report
        report.work_items = items

        for index, item in enumerate(items):
            if self._stop_requested:
                report.stopped = True
                self.console.print(f"[yellow]Stopped. {len(items) - index} file task(s) not started.[/yellow]")
                break
            if index > 0 and self.cooldown_seconds > 0:
                await asyncio.sleep(self.cooldown_seconds)

            try:
                artifact = await self.synthesizer.synthesize(task, item, snapshot, memory_text, system_prompt_text)
                final_artifact = await self.merger.reconcile(item, artifact, snapshot)
                self.writer.commit(final_artifact, on_written=on_commit)
            except AuthError as e:
                report.aborted = True
                self._fail(report, e.reason, on_failure)
                break
            except PipelineError as e:
                if e.file_path is None:
                    e.file_path = item.file_path
                self._fail(report, e.reason, on_failure)
                if not self.continue_on_error:
                    report.aborted = True
                    break
                continue
            report.committed.append(final_artifact.file_path)
            report.written[item.file_path] = final_artifact.file_path

        return report
