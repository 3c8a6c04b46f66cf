# codegen/errors.py
from typing import Optional


class PipelineError(Exception):
    """Base error for everything that can abort a pipeline stage."""

    stage = "pipeline"
    fatal = False

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.file_path = file_path

    @property
    def reason(self) -> str:
        if self.file_path:
            return f"{self.stage} failed for '{self.file_path}': {self.message}"
        return f"{self.stage} failed: {self.message}"


class AuthError(PipelineError):
    """Bad credentials or a rejected request (HTTP 400/401/403). Stops the whole queue."""

    stage = "Authentication"
    fatal = True

    def __init__(self, message: str, provider: str = "", status_code: Optional[int] = None, file_path: Optional[str] = None):
        super().__init__(message, file_path)
        self.provider = provider
        self.status_code = status_code

    @property
    def reason(self) -> str:
        status = f" (HTTP {self.status_code})" if self.status_code else ""
        return f"Authentication/bad request error from {self.provider or 'provider'}{status}: {self.message}"


class ProviderError(PipelineError):
    stage = "Provider request"


class TaskSplitError(PipelineError):
    stage = "Task splitting"

    @property
    def reason(self) -> str:
        return self.message


class ParseError(PipelineError):
    stage = "Parsing"


class PathResolutionError(PipelineError):
    stage = "Path resolution"


class MergeError(PipelineError):
    stage = "Merge"


class MergeTargetMissingError(MergeError, PathResolutionError):
    """A Modify item whose path is nowhere in the project snapshot."""

    stage = "Merge"


class CommitError(PipelineError):
    """Directory creation or write failure for one file (the IOError category)."""

    stage = "Commit"
