# codegen/tool_defs.py
# Every tool is declared once, in OpenAI function-calling form. The provider
# adapters translate these into Anthropic tool / Gemini function-declaration form.
from typing import Any, Dict

TOOL_NAME_SPLIT_TASK_TO_SINGLE_FILES = "SplitTaskToSingleFiles"
TOOL_NAME_REPLACE_SCRIPT_FILE = "ReplaceScriptFile"
TOOL_NAME_MERGE_CODE = "MergeCode"

FIELD_FILE_PATH = "FilePath"
FIELD_CONTENT = "Content"
FIELD_TASK_ID = "TaskId"

tools = [
    {
        "type": "function",
        "function": {
            "name": TOOL_NAME_SPLIT_TASK_TO_SINGLE_FILES,
            "description": "Splits the task into multiple files. Call it once for every file the task touches.",
            "parameters": {
                "type": "object",
                "properties": {
                    FIELD_FILE_PATH: {
                        "type": "string",
                        "description": "Filepath of the task file, e.g. src/path/to/module.py",
                    },
                    FIELD_TASK_ID: {
                        "type": "integer",
                        "description": "Should be integer number 0 for Modify or integer number 1 for Create.",
                    }
                },
                "required": [FIELD_FILE_PATH, FIELD_TASK_ID]
            },
        }
    },
    {
        "type": "function",
        "function": {
            "name": TOOL_NAME_REPLACE_SCRIPT_FILE,
            "description": "Fully replaces the file content with new content. Use it to provide the complete content of one file.",
            "parameters": {
                "type": "object",
                "properties": {
                    FIELD_FILE_PATH: {
                        "type": "string",
                        "description": "Filepath of the file, e.g. src/path/to/module.py",
                    },
                    FIELD_CONTENT: {
                        "type": "string",
                        "description": "FULL content for the selected filepath, partial code snippets are NOT ALLOWED.",
                    }
                },
                "required": [FIELD_FILE_PATH, FIELD_CONTENT]
            },
        }
    },
    {
        "type": "function",
        "function": {
            "name": TOOL_NAME_MERGE_CODE,
            "description": "Merges old and new code into a single file.",
            "parameters": {
                "type": "object",
                "properties": {
                    FIELD_FILE_PATH: {
                        "type": "string",
                        "description": "File path of the merged code",
                    },
                    FIELD_CONTENT: {
                        "type": "string",
                        "description": "Full merged code content",
                    }
                },
                "required": [FIELD_FILE_PATH, FIELD_CONTENT]
            },
        }
    },
]

TOOLS_BY_NAME: Dict[str, Dict[str, Any]] = {tool_def["function"]["name"]: tool_def for tool_def in tools}


def get_tool(name: str) -> Dict[str, Any]:
    """Returns the tool definition registered under `name`. Raises KeyError for unknown tools."""
    return TOOLS_BY_NAME[name]


def required_fields(tool_def: Dict[str, Any]) -> tuple:
    return tuple(tool_def["function"]["parameters"]["required"])
