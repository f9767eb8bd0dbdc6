# Declarative assistant definitions and their translation into the remote payload.

import copy
from typing import Any, Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from assistants_kit.models.common import LocalFile, RemoteAssistant, RemoteFile

if TYPE_CHECKING:
    from assistants_kit.core.linker import LinkOptions

# Metadata entry that carries the definition key on the remote assistant.
METADATA_KEY = "__key__"

# Marker for tools that take no arguments.
NO_ARGUMENTS = None

_NULL_TYPES = ("null",)


def is_null_schema(schema: Optional[Dict[str, Any]]) -> bool:
    """True for the no-arguments marker and for schemas that only admit null."""
    if schema is None:
        return True
    return schema.get("type") in _NULL_TYPES


class FunctionTool(BaseModel):
    """
    A function the assistant may call.
    Attributes:
        description (str): Shown to the assistant to decide when to call the tool.
        parameters (dict): JSON Schema of the arguments. A pydantic model class is
            accepted and converted with ``model_json_schema()``. ``NO_ARGUMENTS``
            (None) or a null schema declares a tool without arguments.
    """
    model_config = ConfigDict(frozen=True)

    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = NO_ARGUMENTS

    @field_validator("parameters", mode="before")
    @classmethod
    def _schema_from_model(cls, value: Any) -> Any:
        if isinstance(value, type) and issubclass(value, BaseModel):
            return value.model_json_schema()
        return value

    @property
    def takes_arguments(self) -> bool:
        return not is_null_schema(self.parameters)


def _file_name(file: LocalFile) -> str:
    return file.name


def _remote_file_name(file: RemoteFile) -> str:
    return file.filename


class FilePolicy(BaseModel):
    """
    Files attached to the assistant.
    Attributes:
        file_ids (list): Remote file ids that are always attached.
        resolve (callable): Async function returning the local files to keep in sync.
        local_key (callable): Matching key of a local file, defaults to its name.
        remote_key (callable): Matching key of a remote file, defaults to its filename.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    file_ids: List[str] = Field(default_factory=list)
    resolve: Optional[Callable[[], Awaitable[List[LocalFile]]]] = None
    local_key: Callable[[LocalFile], str] = _file_name
    remote_key: Callable[[RemoteFile], str] = _remote_file_name


class Definition(BaseModel):
    """
    Local description of an assistant. The ``key`` is written to the remote
    assistant's metadata and is how ``link`` finds it again, so it must be
    unique across the account.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    model: str
    name: Optional[str] = None
    description: Optional[str] = None
    instructions: Optional[str] = None
    function_tools: Dict[str, FunctionTool] = Field(default_factory=dict)
    code_interpreter: bool = False
    retrieval: bool = False
    files: Optional[FilePolicy] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return to_payload(self)

    async def link(self, client: Any = None, options: Optional["LinkOptions"] = None) -> "LinkedDefinition":
        """Finds or creates the matching remote assistant and syncs it with this definition."""
        from assistants_kit.core.linker import link
        return await link(self, client, options)

    def link_unsafe(self, client: Any, assistant_id: str) -> "LinkedDefinition":
        """Binds the definition to an assistant id without calling the remote service."""
        payload = self.to_payload()
        remote = RemoteAssistant(id=assistant_id, **payload)
        return LinkedDefinition(**self._fields(), id=assistant_id, remote=remote, client=client)

    def _fields(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in Definition.model_fields}


class LinkedDefinition(Definition):
    """A definition bound to its remote assistant. Only produced by linking."""

    id: str
    remote: RemoteAssistant
    client: Any = Field(default=None, exclude=True, repr=False)


def function_tool_payload(name: str, tool: FunctionTool) -> Dict[str, Any]:
    """The remote representation of one function tool. No-argument tools omit 'parameters'."""
    function: Dict[str, Any] = {"name": name}
    if tool.description is not None:
        function["description"] = tool.description
    if tool.takes_arguments:
        function["parameters"] = copy.deepcopy(tool.parameters)
    return {"type": "function", "function": function}


def capability_tools(definition: Definition) -> List[Dict[str, Any]]:
    tools: List[Dict[str, Any]] = []
    if definition.code_interpreter:
        tools.append({"type": "code_interpreter"})
    if definition.retrieval:
        tools.append({"type": "retrieval"})
    return tools


def to_payload(definition: Definition) -> Dict[str, Any]:
    """
    Builds the create/update payload for a definition. Attached files are not
    part of it; the linker decides the file ids.
    """
    tools = [function_tool_payload(name, tool) for name, tool in definition.function_tools.items()]
    tools.extend(capability_tools(definition))

    payload: Dict[str, Any] = {"model": definition.model}
    for field in ("name", "description", "instructions"):
        value = getattr(definition, field)
        if value is not None:
            payload[field] = value
    payload["tools"] = tools
    # The key always wins over user metadata so linking can find the assistant again.
    payload["metadata"] = {**definition.metadata, METADATA_KEY: definition.key}
    return payload
