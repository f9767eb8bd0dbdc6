# The module is to define the models exchanged with the assistants API.
# Remote responses are converted into these models so the core does not depend
# on the response classes of a particular SDK release.

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_dict(obj: Any) -> Dict[str, Any]:
    """Returns a plain dict for an SDK response object, a pydantic model or a mapping."""
    if isinstance(obj, dict):
        return obj
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return dict(vars(obj))


class RemoteModel(BaseModel):
    """Base for remote snapshots, keeping any extra fields the service returns."""
    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_remote(cls, obj: Any):
        if isinstance(obj, cls):
            return obj
        return cls.model_validate(as_dict(obj))


class RunStatus:
    """Run statuses reported by the remote service."""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    EXPIRED = "expired"


POLLABLE_STATUSES = (RunStatus.QUEUED, RunStatus.IN_PROGRESS)


class FunctionCall(BaseModel):
    name: str = Field(..., description="The name of the function to call.")
    arguments: str = Field(default="", description="The raw JSON arguments produced by the assistant.")


class ToolCall(RemoteModel):
    """
    Represents a tool call requested by a run.
    Attributes:
        id (str): The unique ID for the tool call.
        function (FunctionCall): The function name and raw arguments.
        type (str): The type of the tool call, always 'function'.
    """
    id: str = Field(..., description="The unique ID for the tool call.")
    function: FunctionCall = Field(..., description="The function name and arguments.")
    type: str = Field(default="function", description="The type of the tool call.")

    @property
    def name(self) -> str:
        return self.function.name

    @property
    def arguments(self) -> str:
        return self.function.arguments


class ToolOutput(BaseModel):
    """The output submitted back to the run for one tool call."""
    tool_call_id: str = Field(..., description="The ID of the tool call this output answers.")
    output: str = Field(..., description="The tool output, always serialized to a string.")


class SubmitToolOutputs(BaseModel):
    tool_calls: List[ToolCall] = Field(default_factory=list)


class RequiredAction(RemoteModel):
    type: str = "submit_tool_outputs"
    submit_tool_outputs: SubmitToolOutputs = Field(default_factory=SubmitToolOutputs)


class Run(RemoteModel):
    """
    A snapshot of a remote run. Snapshots are never mutated; every poll or
    submission replaces the local reference with the latest one.
    """
    id: str
    thread_id: str
    status: str
    assistant_id: Optional[str] = None
    required_action: Optional[RequiredAction] = None

    @property
    def tool_calls(self) -> List[ToolCall]:
        if self.required_action is None:
            return []
        return list(self.required_action.submit_tool_outputs.tool_calls)


class RemoteAssistant(RemoteModel):
    id: str
    model: str
    name: Optional[str] = None
    description: Optional[str] = None
    instructions: Optional[str] = None
    tools: List[Dict[str, Any]] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    file_ids: List[str] = Field(default_factory=list)

    @field_validator("tools", "file_ids", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        # The service reports missing collections as null.
        return [] if value is None else value

    @field_validator("metadata", mode="before")
    @classmethod
    def _null_dict(cls, value: Any) -> Any:
        return {} if value is None else value


class RemoteFile(RemoteModel):
    id: str
    filename: str = ""
    purpose: Optional[str] = None
    bytes: Optional[int] = None


class LocalFile(BaseModel):
    """A file that a definition wants attached to its remote assistant."""
    name: str = Field(..., description="The filename, used as the default matching key.")
    content: bytes = Field(default=b"", description="The raw file content.")

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "LocalFile":
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes())

    def to_upload(self):
        """The (filename, content) tuple accepted by the files API."""
        return (self.name, self.content)
