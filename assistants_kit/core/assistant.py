# Binds a linked definition and its tool handlers into one facade for runs.

from typing import Any, Callable, Dict, Mapping, Optional

from assistants_kit.core.definition import LinkedDefinition, capability_tools
from assistants_kit.core.run import RequiredActionResult, RunOptions, wait_for_complete, wait_for_required_action
from assistants_kit.core.toolbox import ToolHandler, ToolOptions, Toolbox
from assistants_kit.models.common import Run
from assistants_kit.utils.logger import console


class RunHandle:
    """A run together with the toolbox that resolves its tool calls."""

    def __init__(self, run: Run, client: Any, toolbox: Toolbox):
        self.run = run
        self.toolbox = toolbox
        self._client = client

    async def tools_required(self, options: Optional[RunOptions] = None) -> RequiredActionResult:
        return await wait_for_required_action(self.run, self._client, self.toolbox, options)

    async def complete(self, options: Optional[RunOptions] = None) -> Run:
        return await wait_for_complete(self.run, self._client, self.toolbox, options)


class RunApi:
    def __init__(self, assistant: "Assistant"):
        self._assistant = assistant

    async def create(
        self,
        thread_id: str,
        body: Optional[Dict[str, Any]] = None,
        tools: Optional[Callable[[Toolbox], Toolbox]] = None,
        request_options: Optional[Dict[str, Any]] = None,
    ) -> RunHandle:
        """
        Starts a run of the linked assistant on a thread.

        ``tools`` may narrow or extend the toolbox for this run only; the
        resulting function list is sent as the run's tools.
        """
        definition = self._assistant.definition
        toolbox = self._assistant.toolbox
        params: Dict[str, Any] = dict(body or {})
        for reserved in ("assistant_id", "thread_id"):
            if reserved in params:
                raise ValueError(f"'{reserved}' cannot be set in the run body; it is fixed by the assistant and thread")
        if tools is not None:
            toolbox = tools(toolbox)
            params["tools"] = toolbox.tools_payload() + capability_tools(definition)
        # Request options win over body fields of the same name.
        params.update(request_options or {})

        created = await definition.client.beta.threads.runs.create(
            thread_id=thread_id,
            assistant_id=definition.id,
            **params,
        )
        run = Run.from_remote(created)
        console.info(f"Created run '{run.id}' for assistant '{definition.key}' on thread '{thread_id}'")
        return RunHandle(run, definition.client, toolbox)

    def load(self, run: Any) -> RunHandle:
        """Wraps an existing run, e.g. to resume it after a restart."""
        return RunHandle(Run.from_remote(run), self._assistant.definition.client, self._assistant.toolbox)


class Assistant:
    """
    Facade over a linked definition and the handlers of its function tools.
    Runs created or loaded through ``assistant.run`` resolve tool calls with
    ``assistant.toolbox``.
    """

    def __init__(
        self,
        definition: LinkedDefinition,
        tools: Mapping[str, ToolHandler],
        tool_options: Optional[ToolOptions] = None,
    ):
        self.definition = definition
        self.toolbox = Toolbox.from_definition(definition, tools, tool_options)
        self.run = RunApi(self)
