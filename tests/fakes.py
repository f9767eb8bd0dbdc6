from __future__ import annotations

import asyncio
import copy
import itertools
from types import SimpleNamespace
from typing import Any, Dict, List


class CallLog:
    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def record(self, *args: Any, **kwargs: Any) -> None:
        self.calls.append((args, kwargs))

    @property
    def count(self) -> int:
        return len(self.calls)


_ids = itertools.count(1)


def _next_id(prefix: str) -> str:
    return f"{prefix}_{next(_ids)}"


class FakeAssistants:
    def __init__(self) -> None:
        self.store: Dict[str, Dict[str, Any]] = {}
        self.create_log = CallLog()
        self.update_log = CallLog()
        self.retrieve_log = CallLog()
        self.list_log = CallLog()

    async def create(self, **params: Any) -> Dict[str, Any]:
        self.create_log.record(**params)
        assistant = {
            "id": _next_id("asst"),
            "object": "assistant",
            "name": None,
            "description": None,
            "instructions": None,
            "tools": [],
            "metadata": {},
            "file_ids": [],
            **copy.deepcopy(params),
        }
        self.store[assistant["id"]] = assistant
        return copy.deepcopy(assistant)

    async def update(self, assistant_id: str, **params: Any) -> Dict[str, Any]:
        self.update_log.record(assistant_id, **params)
        self.store[assistant_id].update(copy.deepcopy(params))
        return copy.deepcopy(self.store[assistant_id])

    async def retrieve(self, assistant_id: str, **kwargs: Any) -> Dict[str, Any]:
        self.retrieve_log.record(assistant_id, **kwargs)
        return copy.deepcopy(self.store[assistant_id])

    async def list(self, **params: Any) -> SimpleNamespace:
        self.list_log.record(**params)
        limit = params.get("limit", 20)
        return SimpleNamespace(data=[copy.deepcopy(item) for item in self.store.values()][:limit])


class FakeRuns:
    """
    Runs advance through scripted states: each retrieve applies the next
    scripted update, a submit moves the run back to 'queued'.
    """

    def __init__(self) -> None:
        self.store: Dict[str, Dict[str, Any]] = {}
        self.timelines: Dict[str, List[Dict[str, Any]]] = {}
        self.retrieve_delay = 0.0
        # When set, submits must answer every pending tool call.
        self.reject_incomplete = False
        self.create_log = CallLog()
        self.retrieve_log = CallLog()
        self.submit_log = CallLog()

    def script(self, run_id: str, *updates: Dict[str, Any]) -> None:
        self.timelines.setdefault(run_id, []).extend(updates)

    async def create(self, thread_id: str, **params: Any) -> Dict[str, Any]:
        self.create_log.record(thread_id, **params)
        run = {
            "id": _next_id("run"),
            "object": "thread.run",
            "thread_id": thread_id,
            "assistant_id": params["assistant_id"],
            "status": "queued",
            "required_action": None,
        }
        self.store[run["id"]] = run
        return copy.deepcopy(run)

    async def retrieve(self, run_id: str, *, thread_id: str, **kwargs: Any) -> Dict[str, Any]:
        self.retrieve_log.record(run_id, thread_id=thread_id, **kwargs)
        if self.retrieve_delay:
            await asyncio.sleep(self.retrieve_delay)
        timeline = self.timelines.get(run_id) or []
        if timeline:
            self.store[run_id].update(timeline.pop(0))
        return copy.deepcopy(self.store[run_id])

    async def submit_tool_outputs(self, run_id: str, *, thread_id: str, tool_outputs: List[Dict[str, Any]], **kwargs: Any) -> Dict[str, Any]:
        self.submit_log.record(run_id, thread_id=thread_id, tool_outputs=tool_outputs, **kwargs)
        if self.reject_incomplete:
            action = self.store[run_id].get("required_action") or {}
            expected = {call["id"] for call in action.get("submit_tool_outputs", {}).get("tool_calls", [])}
            if {output["tool_call_id"] for output in tool_outputs} != expected:
                raise RuntimeError("400 missing tool outputs")
        self.store[run_id].update({"status": "queued", "required_action": None})
        return copy.deepcopy(self.store[run_id])


class FakeFiles:
    def __init__(self) -> None:
        self.store: Dict[str, Dict[str, Any]] = {}
        self.create_log = CallLog()
        self.retrieve_log = CallLog()
        self.delete_log = CallLog()

    async def create(self, *, file: Any, purpose: str) -> Dict[str, Any]:
        self.create_log.record(file=file, purpose=purpose)
        name, content = file
        created = {"id": _next_id("file"), "object": "file", "filename": name, "purpose": purpose, "bytes": len(content)}
        self.store[created["id"]] = created
        return dict(created)

    async def retrieve(self, file_id: str) -> Dict[str, Any]:
        self.retrieve_log.record(file_id)
        return dict(self.store[file_id])

    async def delete(self, file_id: str) -> Dict[str, Any]:
        self.delete_log.record(file_id)
        self.store.pop(file_id)
        return {"id": file_id, "object": "file", "deleted": True}


class FakeOpenAI:
    """In-memory stand-in for the parts of AsyncOpenAI this package uses."""

    def __init__(self) -> None:
        self.beta = SimpleNamespace(
            assistants=FakeAssistants(),
            threads=SimpleNamespace(runs=FakeRuns()),
        )
        self.files = FakeFiles()

    @property
    def assistants(self) -> FakeAssistants:
        return self.beta.assistants

    @property
    def runs(self) -> FakeRuns:
        return self.beta.threads.runs


def requires_action(*calls: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "status": "requires_action",
        "required_action": {
            "type": "submit_tool_outputs",
            "submit_tool_outputs": {"tool_calls": list(calls)},
        },
    }


def tool_call(call_id: str, name: str, arguments: str) -> Dict[str, Any]:
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}


SUM_SCHEMA = {
    "type": "object",
    "properties": {"a": {"type": "number"}, "b": {"type": "number"}},
    "required": ["a", "b"],
}
