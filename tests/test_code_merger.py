# tests/test_code_merger.py
import asyncio

import pytest

from codegen.code_merger import ReconcilerAndMerger
from codegen.data_models import FileArtifact, TaskKind, WorkItem
from codegen.errors import MergeError, MergeTargetMissingError, PathResolutionError
from codegen.llm_interaction import ProviderGateway
from codegen.output_parser import StructuredOutputParser
from codegen.snapshot import ProjectSnapshot
from codegen.tool_defs import TOOL_NAME_MERGE_CODE
from tests.fakes import FakeTransport, anthropic_tool_reply


@pytest.fixture
def snapshot():
    return ProjectSnapshot({
        "src/app/models.py": "class User:\n    pass\n",
        "src/app/empty.py": "",
        "src/a/util.py": "A = 1\n",
        "src/b/util.py": "B = 1\n",
    })


def _merger(console, transport, config):
    gateway = ProviderGateway(console, transports={"native": transport})
    return ReconcilerAndMerger(gateway, StructuredOutputParser(console), config, 0.0, console)


def _merge_reply(path, content):
    return anthropic_tool_reply(TOOL_NAME_MERGE_CODE, {"FilePath": path, "Content": content})


def test_modify_is_merged_and_written_to_the_resolved_path(mock_console, anthropic_config, snapshot):
    transport = FakeTransport([_merge_reply("models.py", "class User:\n    name = ''\n")])
    item = WorkItem(file_path="app/models.py", kind=TaskKind.MODIFY)
    artifact = FileArtifact(file_path="models.py", content="class User:\n    name = ''\n")

    merged = asyncio.run(_merger(mock_console, transport, anthropic_config).reconcile(item, artifact, snapshot))

    assert merged.file_path == "src/app/models.py"
    assert merged.content == "class User:\n    name = ''\n"
    request = transport.requests[0]
    assert request.agent_name == "CodeMerger"
    assert request.tool["function"]["name"] == TOOL_NAME_MERGE_CODE
    assert "Here is the Old Code:\nclass User:\n    pass\n" in request.user_prompt
    assert request.user_prompt.startswith("Path: src/app/models.py.")


def test_create_never_merges(mock_console, anthropic_config, snapshot):
    transport = FakeTransport()
    item = WorkItem(file_path="src/app/views.py", kind=TaskKind.CREATE)
    artifact = FileArtifact(file_path="src/app/views.py", content="V = 1\n")
    result = asyncio.run(_merger(mock_console, transport, anthropic_config).reconcile(item, artifact, snapshot))
    assert result == artifact
    assert transport.calls == []


def test_create_over_existing_file_takes_canonical_path(mock_console, anthropic_config, snapshot):
    transport = FakeTransport()
    item = WorkItem(file_path="models.py", kind=TaskKind.CREATE)
    artifact = FileArtifact(file_path="models.py", content="new\n")
    result = asyncio.run(_merger(mock_console, transport, anthropic_config).reconcile(item, artifact, snapshot))
    assert result.file_path == "src/app/models.py"
    assert transport.calls == []


def test_modify_of_unknown_file_is_refused(mock_console, anthropic_config, snapshot):
    item = WorkItem(file_path="src/app/ghost.py", kind=TaskKind.MODIFY)
    artifact = FileArtifact(file_path="src/app/ghost.py", content="x\n")
    with pytest.raises(MergeTargetMissingError) as exc_info:
        asyncio.run(_merger(mock_console, FakeTransport(), anthropic_config).reconcile(item, artifact, snapshot))
    assert isinstance(exc_info.value, PathResolutionError)
    assert exc_info.value.file_path == "src/app/ghost.py"


def test_modify_falls_back_to_the_work_item_path(mock_console, anthropic_config, snapshot):
    transport = FakeTransport([_merge_reply("whatever.py", "merged\n")])
    item = WorkItem(file_path="src/app/models.py", kind=TaskKind.MODIFY)
    artifact = FileArtifact(file_path="renamed_by_model.py", content="new\n")
    merged = asyncio.run(_merger(mock_console, transport, anthropic_config).reconcile(item, artifact, snapshot))
    assert merged.file_path == "src/app/models.py"


def test_ambiguous_target_raises_path_resolution_error(mock_console, anthropic_config, snapshot):
    item = WorkItem(file_path="util.py", kind=TaskKind.MODIFY)
    artifact = FileArtifact(file_path="util.py", content="x\n")
    with pytest.raises(PathResolutionError, match="Ambiguous path"):
        asyncio.run(_merger(mock_console, FakeTransport(), anthropic_config).reconcile(item, artifact, snapshot))


def test_empty_old_content_is_a_merge_error(mock_console, anthropic_config, snapshot):
    item = WorkItem(file_path="src/app/empty.py", kind=TaskKind.MODIFY)
    artifact = FileArtifact(file_path="src/app/empty.py", content="x\n")
    with pytest.raises(MergeError, match="No old content"):
        asyncio.run(_merger(mock_console, FakeTransport(), anthropic_config).reconcile(item, artifact, snapshot))


def test_empty_merge_result_is_a_merge_error(mock_console, anthropic_config, snapshot):
    transport = FakeTransport([_merge_reply("src/app/models.py", "   ")])
    item = WorkItem(file_path="src/app/models.py", kind=TaskKind.MODIFY)
    artifact = FileArtifact(file_path="src/app/models.py", content="x\n")
    with pytest.raises(MergeError, match="empty content"):
        asyncio.run(_merger(mock_console, transport, anthropic_config).reconcile(item, artifact, snapshot))
