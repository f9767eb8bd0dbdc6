# Typed orchestration over the OpenAI Assistants API: definitions, linking,
# toolbox dispatch and run driving.

from assistants_kit.core.assistant import Assistant, RunHandle
from assistants_kit.core.definition import (
    METADATA_KEY,
    NO_ARGUMENTS,
    Definition,
    FilePolicy,
    FunctionTool,
    LinkedDefinition,
    to_payload,
)
from assistants_kit.core.exceptions import (
    AssistantNotFoundError,
    AssistantsKitError,
    AssistantVisibleError,
    DefinitionDriftError,
    FilePolicyError,
    RunAbortedError,
    RunTimeoutError,
)
from assistants_kit.core.linker import LinkOptions, link
from assistants_kit.core.run import (
    RequiredActionResult,
    RunOptions,
    ToolsRequired,
    wait_for_complete,
    wait_for_required_action,
)
from assistants_kit.core.toolbox import ToolOptions, Toolbox, join
from assistants_kit.models.common import LocalFile, Run, ToolCall, ToolOutput

__version__ = "0.1.0"
