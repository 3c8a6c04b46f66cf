# tests/test_prompts.py
import pytest

from codegen.prompts import (
    ARCHITECT_SYSTEM_PROMPT, MERGE_CODE_SYSTEM_PROMPT, MERGE_USER_TEMPLATE, MEMORY_HEADER, REFORMAT_PROMPT,
    SPLIT_TASK_SYSTEM_PROMPT, SPLIT_TASK_USER_TEMPLATE, load_prompt_file, with_memory,
)

@pytest.mark.parametrize("prompt", [ARCHITECT_SYSTEM_PROMPT, SPLIT_TASK_SYSTEM_PROMPT, MERGE_CODE_SYSTEM_PROMPT, REFORMAT_PROMPT])
def test_prompts_are_not_empty(prompt):
    assert isinstance(prompt, str)
    assert len(prompt.strip()) > 0

def test_split_prompt_explains_task_ids():
    """The model must know which TaskId means Modify and which means Create."""
    assert "TaskId 0 to Modify" in SPLIT_TASK_SYSTEM_PROMPT
    assert "TaskId 1 to Create" in SPLIT_TASK_SYSTEM_PROMPT

def test_architect_prompt_demands_full_content():
    assert "FULL content" in ARCHITECT_SYSTEM_PROMPT

def test_reformat_prompt_ends_with_code_marker():
    assert REFORMAT_PROMPT.endswith("# CODE:")

def test_templates_format():
    assert SPLIT_TASK_USER_TEMPLATE.format(task="t", code="[]") == "# TASK: t. # CODE: []"
    merged = MERGE_USER_TEMPLATE.format(file_path="a.py", old_code="old", new_code="new")
    assert merged == "Path: a.py. Here is the Old Code:\nold\n\nHere is the New Code:\nnew"

def test_with_memory():
    assert with_memory("prompt", "") == "prompt"
    assert with_memory("prompt", None) == "prompt"
    memory = MEMORY_HEADER + "\n## notes.md:\nx\n"
    assert with_memory("prompt", memory) == "prompt" + memory

def test_load_prompt_file(tmp_path):
    prompt_file = tmp_path / "system.md"
    prompt_file.write_text("You are a Rust expert.", encoding="utf-8")
    assert load_prompt_file(str(prompt_file)) == "You are a Rust expert."
    with pytest.raises(OSError):
        load_prompt_file(str(tmp_path / "missing.md"))
