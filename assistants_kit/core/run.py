# Drives remote runs to completion: polling, tool-output submission and the
# caller-driven required-action loop.

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from assistants_kit.core.config import get_settings
from assistants_kit.core.exceptions import RunAbortedError, RunTimeoutError
from assistants_kit.core.toolbox import Toolbox
from assistants_kit.models.common import POLLABLE_STATUSES, Run, RunStatus, ToolCall, ToolOutput
from assistants_kit.utils.logger import console

StatusObserver = Callable[[Run, str], Any]


class RunOptions(BaseModel):
    """
    Options shared by both ways of waiting on a run.
    Attributes:
        interval (float): Seconds between polls, RUN_POLL_INTERVAL when unset.
        timeout (float): Overall polling budget in seconds, RUN_TIMEOUT when unset.
        on_status_change (callable): Called with (new_run, previous_status) whenever
            a poll observes a different status. May be async.
        abort (asyncio.Event): When set, the in-flight remote call is cancelled.
        request_options (dict): Extra keyword arguments passed to every remote call.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    interval: Optional[float] = None
    timeout: Optional[float] = None
    on_status_change: Optional[StatusObserver] = None
    abort: Optional[asyncio.Event] = None
    request_options: Dict[str, Any] = Field(default_factory=dict)

    def resolved_interval(self) -> float:
        return self.interval if self.interval is not None else get_settings().RUN_POLL_INTERVAL

    def resolved_timeout(self) -> Optional[float]:
        return self.timeout if self.timeout is not None else get_settings().RUN_TIMEOUT


async def _remote(awaitable: Awaitable[Any], options: RunOptions, run: Optional[Run] = None) -> Any:
    """Awaits a remote call, cancelling it if the abort event fires first."""
    abort = options.abort
    if abort is None:
        return await awaitable
    if abort.is_set():
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise RunAbortedError(run)

    request = asyncio.ensure_future(awaitable)
    aborted = asyncio.ensure_future(abort.wait())
    try:
        await asyncio.wait({request, aborted}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        aborted.cancel()
    if request.done():
        return request.result()
    request.cancel()
    raise RunAbortedError(run)


async def _notify(options: RunOptions, run: Run, previous_status: str) -> None:
    if options.on_status_change is None:
        return
    result = options.on_status_change(run, previous_status)
    if inspect.isawaitable(result):
        await result


async def _poll(client: Any, run: Run, options: RunOptions, budget: Optional[float]) -> Tuple[Run, Optional[float]]:
    """Polls until the run leaves the queued/in_progress states. Returns the run and the remaining budget."""
    interval = options.resolved_interval()
    while run.status in POLLABLE_STATUSES:
        started = time.monotonic()
        await asyncio.sleep(interval)
        previous_status = run.status
        run = Run.from_remote(await _remote(
            client.beta.threads.runs.retrieve(run.id, thread_id=run.thread_id, **options.request_options),
            options,
            run,
        ))
        if budget is not None:
            budget -= time.monotonic() - started

        if run.status != previous_status:
            console.debug(f"Run '{run.id}' moved from {previous_status} to {run.status}")
            await _notify(options, run, previous_status)

        if budget is not None and budget <= 0 and run.status in POLLABLE_STATUSES:
            raise RunTimeoutError(run)
    return run, budget


async def _submit(client: Any, run: Run, outputs: List[ToolOutput], options: RunOptions) -> Run:
    console.info(f"Submitting {len(outputs)} tool output(s) for run '{run.id}'")
    submitted = await _remote(
        client.beta.threads.runs.submit_tool_outputs(
            run.id,
            thread_id=run.thread_id,
            tool_outputs=[output.model_dump() for output in outputs],
            **options.request_options,
        ),
        options,
        run,
    )
    return Run.from_remote(submitted)


def _requires_action(run: Run) -> bool:
    return run.status == RunStatus.REQUIRES_ACTION and run.required_action is not None


async def wait_for_complete(
    run: Any,
    client: Any,
    toolbox: Toolbox,
    options: Optional[RunOptions] = None,
) -> Run:
    """
    Waits until the run reaches a terminal status, resolving every required
    action through the toolbox along the way.

    Tool calls of one round are handled one after another and submitted as a
    single batch. The timeout budget only counts time spent polling; time
    spent inside tools or submitting outputs is not deducted.
    """
    options = options or RunOptions()
    run = Run.from_remote(run)
    budget = options.resolved_timeout()
    while True:
        run, budget = await _poll(client, run, options, budget)
        if not _requires_action(run):
            return run
        outputs = [await toolbox.handle_action(call) for call in run.tool_calls]
        run = await _submit(client, run, outputs, options)


class RequiredActionResult(BaseModel):
    """The run as it stopped polling, plus a handle when tool outputs are needed."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    run: Run
    tools_request: Optional["ToolsRequired"] = None


class ToolsRequired:
    """
    Pending tool calls of a run in 'requires_action'. ``execute`` resolves
    them, submits the outputs and waits for the next required action.
    """

    def __init__(self, run: Run, client: Any, toolbox: Toolbox, options: RunOptions):
        self.run = run
        self._client = client
        self._toolbox = toolbox
        self._options = options

    @property
    def tool_calls(self) -> List[ToolCall]:
        return self.run.tool_calls

    async def execute(self, overrides: Optional[Dict[str, str]] = None) -> RequiredActionResult:
        """
        Resolves all pending calls and submits them in one batch.

        ``overrides`` maps a tool call id, or a function name, to a literal
        output used instead of calling the handler. All other calls run
        concurrently. If a handler fails fatally the successful outputs are
        still submitted, then the first fatal error is raised, even when the
        remote rejects the incomplete batch.
        """
        overrides = overrides or {}
        outputs: Dict[str, ToolOutput] = {}
        pending: List[ToolCall] = []
        for call in self.tool_calls:
            override = overrides.get(call.id, overrides.get(call.name))
            if override is not None:
                outputs[call.id] = ToolOutput(tool_call_id=call.id, output=override)
            else:
                pending.append(call)

        results = await asyncio.gather(
            *(self._toolbox.handle_action(call) for call in pending),
            return_exceptions=True,
        )
        fatal: Optional[BaseException] = None
        for call, result in zip(pending, results):
            if isinstance(result, BaseException):
                if fatal is None:
                    fatal = result
                continue
            outputs[call.id] = result

        batch = [outputs[call.id] for call in self.tool_calls if call.id in outputs]
        try:
            run = await _submit(self._client, self.run, batch, self._options)
        except Exception as submit_error:
            # A fatal handler error takes precedence over a rejected submit.
            if fatal is None:
                raise
            raise fatal from submit_error
        if fatal is not None:
            raise fatal
        return await wait_for_required_action(run, self._client, self._toolbox, self._options)


RequiredActionResult.model_rebuild()


async def wait_for_required_action(
    run: Any,
    client: Any,
    toolbox: Toolbox,
    options: Optional[RunOptions] = None,
) -> RequiredActionResult:
    """Polls the run and hands required actions back to the caller instead of resolving them."""
    options = options or RunOptions()
    run, _ = await _poll(client, Run.from_remote(run), options, options.resolved_timeout())
    if _requires_action(run):
        return RequiredActionResult(run=run, tools_request=ToolsRequired(run, client, toolbox, options))
    return RequiredActionResult(run=run)
