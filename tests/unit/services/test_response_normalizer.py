"""
Unit Tests for the generation response normalizer
"""
import pytest

from appforge.core.exceptions import GenerationFailedError
from appforge.services.response_normalizer import (
    normalize_file_list,
    normalize_generation_payload,
    normalize_project_payload,
)


class TestMalformedEntries:
    """Bad entries are dropped, never raised"""

    def test_non_string_content_and_missing_path_are_dropped(self):
        result = normalize_file_list([
            {"path": "/App.js", "content": 123},
            {},
            {"path": "/ok.js", "content": "fine"},
        ])
        assert result.file_set == {"/ok.js": "fine"}
        assert result.dropped_count == 2
        assert {e.code for e in result.dropped} == {"MALFORMED_ENTRY"}

    def test_escaping_path_is_dropped(self):
        result = normalize_file_list([{"path": "../secrets.js", "content": "x"}])
        assert len(result.file_set) == 0
        assert result.dropped_count == 1

    def test_non_object_entry_is_dropped(self):
        result = normalize_file_list(["/App.js", None])
        assert result.dropped_count == 2

    def test_paths_are_normalized(self):
        result = normalize_file_list([{"path": "components//Nav.jsx", "content": "x"}])
        assert list(result.file_set) == ["/components/Nav.jsx"]

    def test_later_duplicate_wins(self):
        result = normalize_file_list([
            {"path": "/App.js", "content": "first"},
            {"path": "App.js", "content": "second"},
        ])
        assert result.file_set == {"/App.js": "second"}


class TestProjectPayload:
    """Whole-project {files: {path: {code}}} shape"""

    def test_project_shape(self):
        result = normalize_project_payload({
            "files": {"/App.js": {"code": "a"}, "/main.jsx": {"code": "b"}, "/bad.js": {"code": None}},
            "generatedFiles": ["/App.js", "/main.jsx", "/missing.js"],
        })
        assert result.file_set == {"/App.js": "a", "/main.jsx": "b"}
        assert result.dropped_count == 1
        assert result.missing_generated == ["/missing.js"]

    def test_missing_files_object_fails(self):
        with pytest.raises(GenerationFailedError):
            normalize_project_payload({"generatedFiles": []})


class TestGenerationPayload:
    """Either shape is accepted at the top level"""

    def test_accepts_bare_list(self):
        result = normalize_generation_payload([{"path": "/App.js", "content": "x"}])
        assert result.file_set == {"/App.js": "x"}

    def test_accepts_success_envelope(self):
        result = normalize_generation_payload({"success": True, "files": [{"path": "/App.js", "content": "x"}]})
        assert result.file_set == {"/App.js": "x"}

    def test_accepts_project_envelope(self):
        result = normalize_generation_payload({"files": {"/App.js": {"code": "x"}}})
        assert result.file_set == {"/App.js": "x"}

    @pytest.mark.parametrize("payload", [{"success": True}, {"files": "nope"}, "text", 42, None])
    def test_malformed_top_level_fails(self, payload):
        with pytest.raises(GenerationFailedError):
            normalize_generation_payload(payload)
