# Error types raised by assistants-kit and the failure tags used by the toolbox.

from typing import TYPE_CHECKING, Iterable, Optional, Union

if TYPE_CHECKING:
    from assistants_kit.models.common import Run


class AssistantsKitError(Exception):
    """Base class for every error raised by this package."""


class AssistantVisibleError(AssistantsKitError):
    """
    Raise this from a tool handler when the assistant should receive the
    error message as the tool output instead of the run being aborted.
    """


# --- Linking ---

class DefinitionDriftError(AssistantsKitError):
    """The remote assistant differs from the local definition and the update mode is 'throw'."""

    def __init__(self, key: str, differences: Iterable[str]):
        self.key = key
        self.differences = list(differences)
        super().__init__(
            f"Assistant with key '{key}' is out of sync with remote on fields "
            f"{', '.join(self.differences)}. To update it automatically, set update_mode to 'update'."
        )


class FilePolicyError(AssistantsKitError):
    """Local files would have to be uploaded but the file mode is 'throw'."""

    def __init__(self, key: str, file_names: Iterable[str]):
        self.key = key
        self.file_names = list(file_names)
        super().__init__(
            f"Assistant with key '{key}' is missing remote files: {', '.join(self.file_names)}"
        )


class AssistantNotFoundError(AssistantsKitError):
    """No remote assistant matched the definition and creation was not allowed."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No remote assistant found for key '{key}' and allow_create is disabled.")


# --- Runs ---

class RunTimeoutError(AssistantsKitError):
    """The polling budget ran out while the run was still queued or in progress."""

    def __init__(self, run: "Run"):
        self.run = run
        super().__init__(f"Timed out waiting for run '{run.id}' (last status: {run.status}).")


class RunAbortedError(AssistantsKitError):
    """The abort event was set while waiting on the remote service."""

    def __init__(self, run: Optional["Run"] = None):
        self.run = run
        target = f"run '{run.id}'" if run is not None else "run"
        super().__init__(f"Aborted while waiting for {target}.")


# --- Toolbox failure tags ---

class Recoverable:
    """A tool failure the assistant should read about."""

    __slots__ = ("message",)

    def __init__(self, message: str):
        self.message = message

    def __repr__(self) -> str:
        return f"Recoverable({self.message!r})"


class Fatal:
    """A tool failure that must abort the run loop."""

    __slots__ = ("cause",)

    def __init__(self, cause: BaseException):
        self.cause = cause

    @property
    def message(self) -> str:
        return str(self.cause)

    def __repr__(self) -> str:
        return f"Fatal({self.cause!r})"


ToolFailure = Union[Recoverable, Fatal]


def classify_error(error: BaseException) -> ToolFailure:
    """Tags an exception caught at the toolbox boundary."""
    if isinstance(error, AssistantVisibleError):
        return Recoverable(str(error))
    return Fatal(error)


