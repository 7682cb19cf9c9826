"""
File-Set Merge Engine

    merged = defaults ⊕ baseline ⊕ incoming      (right operand wins per path)

The merge is an additive / overwriting union: nothing present on the left is
ever removed by the right. Inputs are never mutated, so folding the same
incoming set twice gives the same result as folding it once.
"""

from dataclasses import dataclass

from appforge.services.file_set import FileSet


def merge_file_sets(defaults: FileSet, baseline: FileSet, incoming: FileSet) -> FileSet:
    """Pure three-layer merge with last-writer-wins per path."""
    merged = dict(defaults)
    merged.update(baseline)
    merged.update(incoming)
    return FileSet(merged)


@dataclass(frozen=True)
class MergeResult:
    """Outcome of folding incoming files into a baseline"""
    file_set: FileSet
    changed: bool
    added: int = 0
    updated: int = 0


class FileSetMergeEngine:
    """
    Merge engine bound to the process-wide defaults.

    ``defaults`` is injected once at startup and only ever read.
    """

    def __init__(self, defaults: FileSet):
        self._defaults = defaults

    @property
    def defaults(self) -> FileSet:
        return self._defaults

    def merge(self, baseline: FileSet, incoming: FileSet = None) -> FileSet:
        """Full view handed to the sandbox projection."""
        return merge_file_sets(self._defaults, baseline, incoming or FileSet.empty())

    def fold(self, baseline: FileSet, incoming: FileSet) -> MergeResult:
        """
        Fold incoming files into the session baseline.

        ``changed`` is False when the result is structurally equal to the
        current baseline, in which case callers must not signal an update.
        """
        added = sum(1 for path in incoming if path not in baseline)
        updated = sum(
            1 for path, code in incoming.items()
            if path in baseline and baseline[path] != code
        )
        if not added and not updated:
            return MergeResult(file_set=baseline, changed=False)

        merged = dict(baseline)
        merged.update(incoming)
        return MergeResult(file_set=FileSet(merged), changed=True, added=added, updated=updated)
