"""
Generation Response Normalizer

Turns either backend shape into a canonical FileSet:

    incremental:    [{"path": "/App.js", "content": "..."}, ...]
    whole project:  {"files": {"/App.js": {"code": "..."}}, "generatedFiles": [...]}

Bad entries are dropped and logged one by one; only a malformed top-level
payload fails the whole response.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from appforge.core.exceptions import GenerationFailedError, MalformedEntryError
from appforge.core.logging_config import logger
from appforge.services.file_set import FileSet, normalize_path


@dataclass
class NormalizedFiles:
    """Normalizer output: the usable files plus what was dropped"""
    file_set: FileSet
    dropped: List[MalformedEntryError] = field(default_factory=list)
    missing_generated: List[str] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)


def _validate_path(raw_path: Any, entry: Any, index: Optional[int]) -> str:
    if raw_path is None:
        raise MalformedEntryError("missing path", entry, index)
    if not isinstance(raw_path, str):
        raise MalformedEntryError("path is not a string", entry, index)
    path = normalize_path(raw_path)
    if path is None:
        raise MalformedEntryError(f"path {raw_path!r} is not root-relative", entry, index)
    return path


def _entry_from_pair(entry: Any, index: int) -> tuple:
    """Incremental shape: {"path": str, "content": str}"""
    if not isinstance(entry, dict):
        raise MalformedEntryError("entry is not an object", entry, index)
    path = _validate_path(entry.get("path"), entry, index)
    content = entry.get("content")
    if not isinstance(content, str):
        raise MalformedEntryError("content is not a string", entry, index)
    return path, content


def _entry_from_project(raw_path: Any, value: Any) -> tuple:
    """Whole-project shape: "path": {"code": str}"""
    path = _validate_path(raw_path, value, None)
    if not isinstance(value, dict):
        raise MalformedEntryError("file value is not an object", value)
    code = value.get("code")
    if not isinstance(code, str):
        raise MalformedEntryError("code is not a string", value)
    return path, code


def _log_dropped(error: MalformedEntryError, source: str) -> None:
    logger.warning(
        f"[Normalizer] Dropped malformed {source} entry: {error.message}",
        extra={"event_type": "malformed_entry", **error.details}
    )


def normalize_file_list(entries: List[Any]) -> NormalizedFiles:
    """Normalize the incremental [{path, content}] shape."""
    files: Dict[str, str] = {}
    dropped: List[MalformedEntryError] = []

    for index, entry in enumerate(entries):
        try:
            path, content = _entry_from_pair(entry, index)
        except MalformedEntryError as e:
            _log_dropped(e, "incremental")
            dropped.append(e)
            continue
        files[path] = content

    return NormalizedFiles(file_set=FileSet(files), dropped=dropped)


def normalize_project_payload(payload: Dict[str, Any]) -> NormalizedFiles:
    """Normalize the whole-project {files: {path: {code}}, generatedFiles} shape."""
    raw_files = payload.get("files")
    if not isinstance(raw_files, dict):
        raise GenerationFailedError("Project payload is missing a 'files' object")

    files: Dict[str, str] = {}
    dropped: List[MalformedEntryError] = []

    for raw_path, value in raw_files.items():
        try:
            path, code = _entry_from_project(raw_path, value)
        except MalformedEntryError as e:
            _log_dropped(e, "project")
            dropped.append(e)
            continue
        files[path] = code

    missing: List[str] = []
    generated = payload.get("generatedFiles")
    if isinstance(generated, list):
        for listed in generated:
            path = normalize_path(listed) if isinstance(listed, str) else None
            if path is None or path not in files:
                missing.append(str(listed))
        if missing:
            logger.warning(f"[Normalizer] generatedFiles lists {len(missing)} paths with no content: {missing[:5]}")

    return NormalizedFiles(file_set=FileSet(files), dropped=dropped, missing_generated=missing)


def normalize_generation_payload(payload: Any) -> NormalizedFiles:
    """
    Accept either generation shape.

    Raises:
        GenerationFailedError: payload is neither a list of entries nor an
            object carrying a ``files`` list/object.
    """
    if isinstance(payload, list):
        return normalize_file_list(payload)

    if isinstance(payload, dict):
        files = payload.get("files")
        if isinstance(files, list):
            return normalize_file_list(files)
        if isinstance(files, dict):
            return normalize_project_payload(payload)
        raise GenerationFailedError("Generation response has no usable 'files' field")

    raise GenerationFailedError(
        f"Generation response has unexpected type {type(payload).__name__}"
    )
