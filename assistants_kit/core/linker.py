# Reconciles a local Definition with its remote assistant: find or create,
# detect drift, update, and keep attached files in sync.

import json
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from assistants_kit.core.config import get_settings
from assistants_kit.core.definition import METADATA_KEY, Definition, FilePolicy, LinkedDefinition, to_payload
from assistants_kit.core.exceptions import AssistantNotFoundError, DefinitionDriftError, FilePolicyError
from assistants_kit.models.common import LocalFile, RemoteAssistant, RemoteFile
from assistants_kit.services.openai_client import get_openai_client
from assistants_kit.utils.logger import console

SyncMode = Literal["update", "throw", "skip"]

# Fields compared between the local payload and the remote assistant.
COMPARED_FIELDS = ("name", "instructions", "model", "tools")

FILE_PURPOSE = "assistants"


def _always(*args: Any) -> bool:
    return True


class LinkOptions(BaseModel):
    """
    Options for ``link``.
    Attributes:
        assistant_id (str): Retrieve this assistant instead of searching by key.
        allow_create (bool): Create the assistant when none is found.
        update_mode (str): What to do on drift: 'update', 'throw' or 'skip'.
        file_mode (str): What to do with files missing remotely: 'update', 'throw' or 'skip'.
        prune_files (bool): Delete remote files that are no longer declared locally.
        list_limit (int): Page size of the key search, ASSISTANT_LIST_LIMIT when unset.
        before_update (callable): Called with (differences, local, remote); returning
            False vetoes the field update.
        after_update (callable): Called with the updated remote assistant.
        after_create (callable): Called with the created remote assistant.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    assistant_id: Optional[str] = None
    allow_create: bool = True
    update_mode: SyncMode = "update"
    file_mode: SyncMode = "update"
    prune_files: bool = False
    list_limit: Optional[int] = None
    before_update: Callable[[List[str], Dict[str, Any], RemoteAssistant], bool] = _always
    after_update: Optional[Callable[[RemoteAssistant], Any]] = None
    after_create: Optional[Callable[[RemoteAssistant], Any]] = None


class FilePlan(BaseModel):
    """Outcome of a file reconciliation."""
    matched: Dict[str, str] = Field(default_factory=dict, description="Key to remote file id of files present on both sides.")
    uploaded: List[str] = Field(default_factory=list, description="Ids of newly uploaded files.")
    pruned: List[str] = Field(default_factory=list, description="Ids of deleted remote files.")
    file_ids: List[str] = Field(default_factory=list, description="Final attached file ids.")


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def _normalize_tool(tool: Any) -> Dict[str, Any]:
    if hasattr(tool, "model_dump"):
        tool = tool.model_dump(exclude_none=True)
    return _drop_none(tool)


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _drop_none(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [_drop_none(item) for item in value]
    return value


def compare_tools(remote: List[Any], local: List[Any]) -> bool:
    """Order-independent equality of two tool lists."""
    return sorted(_canonical(_normalize_tool(tool)) for tool in remote or []) == \
        sorted(_canonical(_normalize_tool(tool)) for tool in local or [])


def find_differences(remote: RemoteAssistant, local: Dict[str, Any]) -> List[str]:
    """Names of the compared fields that differ between the remote assistant and the local payload."""
    differences = []
    for field in COMPARED_FIELDS:
        if field == "tools":
            same = compare_tools(remote.tools, local.get("tools", []))
        else:
            same = getattr(remote, field) == local.get(field)
        if not same:
            differences.append(field)
    return differences


def _describe_drift(field: str, remote: RemoteAssistant, local: Dict[str, Any]) -> str:
    if field == "tools":
        return f"{len(remote.tools)} remote -> {len(local.get('tools', []))} local"
    return f"{getattr(remote, field)!r} -> {local.get(field)!r}"


def _first_by_key(items: List[Any], key_fn: Callable[[Any], str], side: str) -> Dict[str, Any]:
    grouped: Dict[str, Any] = {}
    for item in items:
        key = key_fn(item)
        if key in grouped:
            console.warning(f"Ignoring {side} file {_file_label(item)} with duplicate key '{key}'")
            continue
        grouped[key] = item
    return grouped


def _file_label(file: Any) -> str:
    if isinstance(file, RemoteFile):
        return f"'{file.filename}' ({file.id})"
    return f"'{file.name}'"


def _dedupe(ids: List[str]) -> List[str]:
    return list(dict.fromkeys(ids))


async def _upload(client: Any, file: LocalFile) -> str:
    created = RemoteFile.from_remote(await client.files.create(file=file.to_upload(), purpose=FILE_PURPOSE))
    console.info(f"Uploaded file '{file.name}' as {created.id}")
    return created.id


async def reconcile_files(
    key: str,
    policy: FilePolicy,
    remote_file_ids: List[str],
    client: Any,
    file_mode: SyncMode = "update",
    prune_files: bool = False,
) -> FilePlan:
    """
    Matches the files produced by the policy resolver against the remote files
    by key. Local-only files are uploaded, remote-only files are deleted when
    pruning is enabled. Static ids are never pruned. The final ids are static
    ids, then uploads, then matches.
    """
    local_files = list(await policy.resolve()) if policy.resolve is not None else []
    remote_files = [RemoteFile.from_remote(await client.files.retrieve(file_id)) for file_id in remote_file_ids]

    local_by_key = _first_by_key(local_files, policy.local_key, "local")
    remote_by_key = _first_by_key(remote_files, policy.remote_key, "remote")

    static_ids = set(policy.file_ids)
    matched = {k: remote_by_key[k].id for k in local_by_key if k in remote_by_key}
    to_upload = [file for k, file in local_by_key.items() if k not in remote_by_key]
    to_prune = [
        file for k, file in remote_by_key.items()
        if k not in local_by_key and file.id not in static_ids
    ]

    if to_upload and file_mode == "throw":
        raise FilePolicyError(key, [file.name for file in to_upload])

    plan = FilePlan(matched=matched)
    for file in to_upload:
        plan.uploaded.append(await _upload(client, file))

    if prune_files:
        for file in to_prune:
            await client.files.delete(file.id)
            plan.pruned.append(file.id)
            console.info(f"Pruned remote file '{file.filename}' ({file.id})")

    plan.file_ids = _dedupe(list(policy.file_ids) + plan.uploaded + list(matched.values()))
    return plan


async def _find_remote(definition: Definition, client: Any, options: LinkOptions) -> Optional[RemoteAssistant]:
    if options.assistant_id:
        return RemoteAssistant.from_remote(await client.beta.assistants.retrieve(options.assistant_id))

    limit = options.list_limit or get_settings().ASSISTANT_LIST_LIMIT
    page = await client.beta.assistants.list(limit=limit)
    assistants = [RemoteAssistant.from_remote(item) for item in page.data]
    matches = [assistant for assistant in assistants if assistant.metadata.get(METADATA_KEY) == definition.key]
    if len(matches) > 1:
        console.warning(
            f"Found {len(matches)} assistants with key '{definition.key}' "
            f"({', '.join(match.id for match in matches)}); using {matches[0].id}"
        )
    return matches[0] if matches else None


async def _desired_file_ids(
    definition: Definition,
    remote_file_ids: List[str],
    client: Any,
    options: LinkOptions,
) -> Optional[List[str]]:
    """The file ids the assistant should have, or None when files are not managed."""
    policy = definition.files
    if policy is None or options.file_mode == "skip":
        return None
    if policy.resolve is None:
        return list(policy.file_ids)
    plan = await reconcile_files(
        definition.key, policy, remote_file_ids, client, options.file_mode, options.prune_files,
    )
    return plan.file_ids


async def link(
    definition: Definition,
    client: Any = None,
    options: Optional[LinkOptions] = None,
) -> LinkedDefinition:
    """
    Finds the remote assistant for ``definition`` (by id, or by the key stored
    in its metadata), brings it in line with the definition, or creates it.
    """
    options = options or LinkOptions()
    client = client or get_openai_client()
    local = to_payload(definition)

    remote = await _find_remote(definition, client, options)
    update: Dict[str, Any] = {}

    if remote is not None and options.update_mode != "skip":
        differences = find_differences(remote, local)
        if differences:
            console.display_data_as_table(
                {field: _describe_drift(field, remote, local) for field in differences},
                f"Drift detected for '{definition.key}'",
            )
            if options.update_mode == "throw":
                raise DefinitionDriftError(definition.key, differences)
            if options.before_update(differences, local, remote):
                update.update(local)
            else:
                console.warning(f"Update of assistant '{definition.key}' vetoed by before_update")

    if remote is not None:
        file_ids = await _desired_file_ids(definition, remote.file_ids, client, options)
        if file_ids is not None and set(file_ids) != set(remote.file_ids):
            update["file_ids"] = file_ids

        if update:
            remote = RemoteAssistant.from_remote(await client.beta.assistants.update(remote.id, **update))
            console.success(f"Updated assistant '{definition.key}' ({remote.id}): {', '.join(sorted(update))}")
            if options.after_update is not None:
                options.after_update(remote)
        else:
            console.info(f"Assistant '{definition.key}' ({remote.id}) is up to date")

    elif options.allow_create:
        payload = dict(local)
        file_ids = await _desired_file_ids(definition, [], client, options)
        if file_ids:
            payload["file_ids"] = file_ids
        remote = RemoteAssistant.from_remote(await client.beta.assistants.create(**payload))
        console.success(f"Created assistant '{definition.key}' ({remote.id})")
        if options.after_create is not None:
            options.after_create(remote)

    if remote is None:
        raise AssistantNotFoundError(definition.key)

    return LinkedDefinition(**definition._fields(), id=remote.id, remote=remote, client=client)
