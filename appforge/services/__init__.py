from appforge.services.file_set import FileSet, FileEntry, normalize_path
from appforge.services.file_merge import FileSetMergeEngine, MergeResult, merge_file_sets
from appforge.services.response_normalizer import NormalizedFiles, normalize_generation_payload

# Workspace core
from appforge.services.generation_dispatcher import GenerationDispatcher, GenerationOutcome
from appforge.services.sandbox_projection import SandboxProjection, ViewMode
from appforge.services.project_session import ProjectSession
from appforge.services.session_manager import SessionManager

__all__ = [
    # File sets
    "FileSet",
    "FileEntry",
    "normalize_path",
    "FileSetMergeEngine",
    "MergeResult",
    "merge_file_sets",
    "NormalizedFiles",
    "normalize_generation_payload",
    # Workspace core
    "GenerationDispatcher",
    "GenerationOutcome",
    "SandboxProjection",
    "ViewMode",
    "ProjectSession",
    "SessionManager",
]
