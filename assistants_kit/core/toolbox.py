# Validated dispatch of remote tool calls to local handler functions.

import inspect
import json
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from assistants_kit.core.definition import Definition, FunctionTool, function_tool_payload
from assistants_kit.core.exceptions import (
    AssistantVisibleError,
    Fatal,
    Recoverable,
    ToolFailure,
    classify_error,
)
from assistants_kit.models.common import ToolCall, ToolOutput
from assistants_kit.services.validator import SchemaValidator, ValidationIssue
from assistants_kit.utils.logger import console

# A handler receives the validated arguments (or nothing for no-argument tools)
# and returns a str, number, bool, dict, list or pydantic model. It may be async.
ToolHandler = Callable[..., Any]


class ToolContext(BaseModel):
    """What a pluggable option gets to know about the call being handled."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    call: ToolCall
    options: "ToolOptions"
    tool_def: Optional[FunctionTool] = None


def default_json_parser(arguments: str, ctx: ToolContext) -> Any:
    try:
        return json.loads(arguments)
    except (TypeError, ValueError):
        raise AssistantVisibleError(f"Invalid JSON: {arguments}")


def default_validator(arguments: Any, ctx: ToolContext) -> None:
    if not ctx.options.validate_arguments or ctx.tool_def is None:
        return
    issues = ctx.options.schema_validator.validate(ctx.tool_def.parameters, arguments)
    if issues:
        raise AssistantVisibleError(ctx.options.format_validation_error(issues, ctx))


def default_validation_formatter(issues: List[ValidationIssue], ctx: ToolContext) -> str:
    return "\n".join(f"arguments{issue.path} {issue.message}" for issue in issues)


def default_error_formatter(failure: ToolFailure, ctx: ToolContext) -> str:
    """Only recoverable failures become tool output, anything else is re-raised."""
    if isinstance(failure, Recoverable):
        return f"Error calling {ctx.call.name}: {failure.message}"
    raise failure.cause


def default_output_formatter(output: Any, ctx: ToolContext) -> str:
    if isinstance(output, str):
        return output
    if isinstance(output, bool) or output is None:
        return json.dumps(output)
    if isinstance(output, (int, float)):
        return str(output)
    if isinstance(output, BaseModel):
        return output.model_dump_json()
    return json.dumps(output, default=str)


class ToolOptions(BaseModel):
    """
    Pluggable steps of ``Toolbox.handle_action``.
    Attributes:
        validate_arguments (bool): Run schema validation before calling a tool.
        json_parser (callable): Parses the raw argument string.
        validator (callable): Validates parsed arguments, raising AssistantVisibleError.
        format_validation_error (callable): Turns validation issues into a message.
        format_tool_error (callable): Turns a tagged failure into tool output or re-raises it.
        format_output (callable): Serializes a handler result into the output string.
        schema_validator (SchemaValidator): The JSON Schema engine used by the default validator.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    validate_arguments: bool = True
    json_parser: Callable[[str, ToolContext], Any] = default_json_parser
    validator: Callable[[Any, ToolContext], None] = default_validator
    format_validation_error: Callable[[List[ValidationIssue], ToolContext], str] = default_validation_formatter
    format_tool_error: Callable[[ToolFailure, ToolContext], str] = default_error_formatter
    format_output: Callable[[Any, ToolContext], str] = default_output_formatter
    schema_validator: Any = Field(default_factory=SchemaValidator)


ToolContext.model_rebuild()


class Toolbox:
    """
    Maps tool names to their definitions and handlers. Failures the assistant
    can act on come back as tool output; anything else propagates.
    """

    def __init__(
        self,
        tool_defs: Mapping[str, FunctionTool],
        tools_fn: Mapping[str, ToolHandler],
        options: Optional[ToolOptions] = None,
    ):
        self.tool_defs: Dict[str, FunctionTool] = dict(tool_defs)
        self.tools_fn: Dict[str, ToolHandler] = dict(tools_fn)
        self.options = options or ToolOptions()

    @classmethod
    def from_definition(
        cls,
        definition: Definition,
        tools_fn: Mapping[str, ToolHandler],
        options: Optional[ToolOptions] = None,
    ) -> "Toolbox":
        return cls(definition.function_tools, tools_fn, options)

    async def handle_action(self, call: Any) -> ToolOutput:
        call = ToolCall.from_remote(call)
        tool_def = self.tool_defs.get(call.name)
        ctx = ToolContext(call=call, options=self.options, tool_def=tool_def)
        try:
            output = await self._dispatch(call, tool_def, ctx)
            return ToolOutput(tool_call_id=call.id, output=self.options.format_output(output, ctx))
        except Exception as exc:
            failure = classify_error(exc)
            if isinstance(failure, Fatal):
                console.error(f"Tool '{call.name}' failed: {exc!r}")
            else:
                console.warning(f"Tool '{call.name}' returned an error to the assistant: {failure.message}")
            return ToolOutput(tool_call_id=call.id, output=self.options.format_tool_error(failure, ctx))

    async def _dispatch(self, call: ToolCall, tool_def: Optional[FunctionTool], ctx: ToolContext) -> Any:
        if tool_def is None:
            raise AssistantVisibleError(
                f"Tool key not found: {call.name}. Please select from {', '.join(self.tool_defs)}"
            )
        handler = self.tools_fn.get(call.name)
        if handler is None:
            raise AssistantVisibleError(f"Tool {call.name} has no registered handler.")

        if not tool_def.takes_arguments:
            result = handler()
        else:
            arguments = self.options.json_parser(call.arguments, ctx)
            self.options.validator(arguments, ctx)
            result = handler(arguments)

        if inspect.isawaitable(result):
            result = await result
        return result

    def join(self, other: "Toolbox") -> "Toolbox":
        """Union of both toolboxes; on a name collision ``other`` wins. Keeps this toolbox's options."""
        return Toolbox(
            {**self.tool_defs, **other.tool_defs},
            {**self.tools_fn, **other.tools_fn},
            self.options,
        )

    def filter(self, predicate: Callable[[str, FunctionTool], bool]) -> "Toolbox":
        """Keeps only the tools for which ``predicate(name, tool_def)`` is true."""
        names = [name for name, tool_def in self.tool_defs.items() if predicate(name, tool_def)]
        return Toolbox(
            {name: self.tool_defs[name] for name in names},
            {name: self.tools_fn[name] for name in names if name in self.tools_fn},
            self.options,
        )

    def tools_payload(self) -> List[Dict[str, Any]]:
        return [function_tool_payload(name, tool_def) for name, tool_def in self.tool_defs.items()]


def join(*toolboxes: Toolbox) -> Toolbox:
    """Joins toolboxes left to right, later toolboxes winning on name collisions."""
    if not toolboxes:
        raise ValueError("join() needs at least one toolbox")
    result = toolboxes[0]
    for toolbox in toolboxes[1:]:
        result = result.join(toolbox)
    return result
