from __future__ import annotations

import copy

import pytest
from pydantic import BaseModel, Field

from fakes import SUM_SCHEMA

from assistants_kit import METADATA_KEY, NO_ARGUMENTS, Definition, FunctionTool, to_payload


def test_translates_to_remote_payload(adder_def: Definition) -> None:
    definition = adder_def.model_copy(
        update={"function_tools": {**adder_def.function_tools, "noop": FunctionTool(parameters=NO_ARGUMENTS)}}
    )

    payload = to_payload(definition)

    assert payload["model"] == "gpt-4"
    assert payload["name"] == "adder"
    assert payload["instructions"] == "You are a calculator"
    assert "description" not in payload
    assert "file_ids" not in payload
    assert len(payload["tools"]) == 4
    assert payload["tools"][0] == {
        "type": "function",
        "function": {"name": "sum", "description": "Adds two numbers", "parameters": SUM_SCHEMA},
    }
    assert payload["tools"][1] == {"type": "function", "function": {"name": "noop"}}
    assert payload["tools"][2:] == [{"type": "code_interpreter"}, {"type": "retrieval"}]
    assert payload["metadata"] == {"foo": "value", METADATA_KEY: "adder"}


def test_key_cannot_be_overridden_by_user_metadata() -> None:
    definition = Definition(key="adder", model="gpt-4", metadata={METADATA_KEY: "other"})

    assert to_payload(definition)["metadata"][METADATA_KEY] == "adder"


def test_payload_does_not_share_or_mutate_schemas() -> None:
    schema = copy.deepcopy(SUM_SCHEMA)
    definition = Definition(
        key="k",
        model="gpt-4",
        function_tools={"sum": FunctionTool(parameters=schema), "noop": FunctionTool(parameters={"type": "null"})},
    )

    payload = definition.to_payload()
    payload["tools"][0]["function"]["parameters"]["required"].append("c")

    assert schema == SUM_SCHEMA
    assert definition.function_tools["noop"].parameters == {"type": "null"}


def test_pydantic_model_as_parameters() -> None:
    class Meeting(BaseModel):
        employee_id: str = Field(..., description="The employee to meet")
        duration: int = Field(..., ge=15, le=180)

    tool = FunctionTool(description="Schedule a meeting", parameters=Meeting)

    assert tool.takes_arguments
    assert tool.parameters["required"] == ["employee_id", "duration"]
    assert tool.parameters["properties"]["duration"]["minimum"] == 15


def test_definition_is_immutable(adder_def: Definition) -> None:
    with pytest.raises(Exception):
        adder_def.model = "gpt-3.5-turbo"


def test_link_unsafe_binds_without_remote_calls(adder_def: Definition, openai_client) -> None:
    linked = adder_def.link_unsafe(openai_client, "asst_42")

    assert linked.id == "asst_42"
    assert linked.client is openai_client
    assert linked.key == "adder"
    assert linked.remote.metadata[METADATA_KEY] == "adder"
    assert openai_client.assistants.create_log.count == 0
    assert openai_client.assistants.list_log.count == 0
    assert "client" not in linked.model_dump()
