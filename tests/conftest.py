from __future__ import annotations

import pytest

from fakes import SUM_SCHEMA, FakeOpenAI

from assistants_kit import Definition, FunctionTool


@pytest.fixture
def openai_client() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def adder_def() -> Definition:
    return Definition(
        key="adder",
        model="gpt-4",
        name="adder",
        instructions="You are a calculator",
        code_interpreter=True,
        retrieval=True,
        function_tools={
            "sum": FunctionTool(description="Adds two numbers", parameters=SUM_SCHEMA),
        },
        metadata={"foo": "value"},
    )
