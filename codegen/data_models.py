# codegen/data_models.py
from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskKind(IntEnum):
    MODIFY = 0
    CREATE = 1


class WorkItem(BaseModel):
    file_path: str
    kind: TaskKind
    model_config = ConfigDict(extra='ignore', frozen=True)


class FileArtifact(BaseModel):
    file_path: str
    content: str
    model_config = ConfigDict(extra='ignore', frozen=True)

    def with_path(self, file_path: str) -> "FileArtifact":
        """Returns a copy pointing at another path; the original is left untouched."""
        return self.model_copy(update={"file_path": file_path})


class ProviderConfig(BaseModel):
    provider: str
    model: str
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    max_output_tokens: int = 8192
    transport: str = "native"  # "native" (httpx) or "litellm"
    timeout: float = 300.0
    model_config = ConfigDict(extra='ignore', frozen=True)


class ProviderRequest(BaseModel):
    system_prompt: str
    user_prompt: str
    temperature: float = 0.0
    tool: Optional[Dict[str, Any]] = None  # A single function definition, see tool_defs.py
    agent_name: str = "agent"
    model_config = ConfigDict(extra='ignore', frozen=True)

    @property
    def tool_name(self) -> Optional[str]:
        if not self.tool:
            return None
        return self.tool["function"]["name"]


class ToolInvocation(BaseModel):
    name: str
    arguments: Dict[str, str] = Field(default_factory=dict)
    raw_arguments: str = ""
    model_config = ConfigDict(extra='ignore', frozen=True)


class ProviderResponse(BaseModel):
    provider: str
    stop_reason: Optional[str] = None
    tool_calls: List[ToolInvocation] = Field(default_factory=list)
    text: str = ""
    model_config = ConfigDict(extra='ignore', frozen=True)

    @property
    def is_empty(self) -> bool:
        return not self.tool_calls and not self.text.strip()


class RawReply(BaseModel):
    """What a transport hands back: an HTTP-like status plus the decoded body, if any."""
    status_code: int
    body: Optional[Any] = None
    text: str = ""
    model_config = ConfigDict(extra='ignore', frozen=True)
