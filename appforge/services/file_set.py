"""
FileSet - immutable path -> code mapping for a generated project

Paths are root-relative and always start with "/" (e.g. "/App.js",
"/components/Navbar.jsx"). Insertion order is kept so exports are
deterministic; equality is structural over path -> code.

Shapes:
    sandbox shape:  {"/App.js": {"code": "..."}}
    wire shape:     [{"path": "/App.js", "content": "..."}]
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class FileEntry:
    """Single generated file"""
    path: str
    code: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "content": self.code}


def normalize_path(raw: str) -> Optional[str]:
    """
    Normalize a generated file path to the canonical "/a/b.js" form.

    Returns None for paths that cannot be made root-relative
    (empty, or escaping the root with "..").
    """
    if not isinstance(raw, str):
        return None

    segments = []
    for segment in raw.strip().replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            return None
        segments.append(segment)

    if not segments:
        return None
    return "/" + "/".join(segments)


class FileSet(Mapping[str, str]):
    """Read-only ordered mapping of FilePath -> code"""

    __slots__ = ("_files",)

    def __init__(self, files: Optional[Mapping[str, str]] = None):
        data: Dict[str, str] = {}
        for path, code in (files or {}).items():
            if code is None:
                raise ValueError(f"FileSet entry {path!r} has no code")
            data[path] = code
        self._files = data

    @classmethod
    def empty(cls) -> "FileSet":
        return cls()

    @classmethod
    def from_entries(cls, entries: Iterable[FileEntry]) -> "FileSet":
        return cls({entry.path: entry.code for entry in entries})

    @classmethod
    def from_sandbox(cls, files: Mapping[str, Mapping[str, str]]) -> "FileSet":
        """Build from the sandbox shape {path: {"code": str}}; trusted input only."""
        return cls({path: value["code"] for path, value in files.items()})

    def __getitem__(self, path: str) -> str:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FileSet):
            return self._files == other._files
        if isinstance(other, Mapping):
            return self._files == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._files.items()))

    def __repr__(self) -> str:
        return f"FileSet({len(self._files)} files: {list(self._files)[:5]})"

    def entries(self) -> List[FileEntry]:
        return [FileEntry(path, code) for path, code in self._files.items()]

    def items_ordered(self) -> List[Tuple[str, str]]:
        return list(self._files.items())

    def to_sandbox(self) -> Dict[str, Dict[str, str]]:
        """Shape expected by the bundler/editor"""
        return {path: {"code": code} for path, code in self._files.items()}

    def to_wire(self) -> List[Dict[str, str]]:
        """Shape used by the generation and deploy endpoints"""
        return [entry.to_dict() for entry in self.entries()]

    def total_bytes(self) -> int:
        return sum(len(code.encode("utf-8")) for code in self._files.values())
