"""Tests for script and session loading."""

import pytest
from pydantic import ValidationError

from interpo.config import (
    CsvConfig,
    PromptEntry,
    ScriptConfig,
    load_script,
    load_session,
    parse_assignments,
)
from interpo.errors import ConfigurationError


class TestLoadScript:
    def test_mapping(self, tmp_path):
        path = tmp_path / "script.yaml"
        path.write_text(
            "name: export\n"
            "session:\n"
            "  name: [Al, Bo]\n"
            "actions:\n"
            "  - csv: [name]\n"
        )
        config = load_script(path)
        assert config.name == "export"
        assert config.session == {"name": ["Al", "Bo"]}
        assert config.actions == [{"csv": ["name"]}]

    def test_bare_list_is_actions(self, tmp_path):
        path = tmp_path / "script.yaml"
        path.write_text("- emit: hello\n")
        assert load_script(path).actions == [{"emit": "hello"}]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "script.yaml"
        path.write_text("")
        assert load_script(path) == ScriptConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_script(tmp_path / "nope.yaml")

    def test_scalar_document(self, tmp_path):
        path = tmp_path / "script.yaml"
        path.write_text("just text\n")
        with pytest.raises(ConfigurationError):
            load_script(path)


class TestLoadSession:
    def test_yaml(self, tmp_path):
        path = tmp_path / "session.yaml"
        path.write_text("region: EU\nrows: [1, 2]\n")
        assert load_session(path) == {"region": "EU", "rows": [1, 2]}

    def test_json(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text('{"a": {"b": true}}')
        assert load_session(path) == {"a": {"b": True}}

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "session.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError):
            load_session(path)


class TestParseAssignments:
    def test_scalars_and_lists(self):
        result = parse_assignments(["name=Al", "count=3", "tags=[a, b]", "empty="])
        assert result == {"name": "Al", "count": 3, "tags": ["a", "b"], "empty": ""}

    def test_value_may_contain_equals(self):
        assert parse_assignments(["expr=a=b"]) == {"expr": "a=b"}

    def test_unparseable_yaml_is_kept_as_text(self):
        assert parse_assignments(["v=[oops"]) == {"v": "[oops"}

    @pytest.mark.parametrize("item", ["novalue", "=x"])
    def test_rejects_malformed(self, item):
        with pytest.raises(ConfigurationError):
            parse_assignments([item])


class TestModels:
    def test_prompt_entry_defaults(self):
        entry = PromptEntry(name="user")
        assert entry.attempts == 3
        assert entry.pattern is None
        assert not entry.required

    def test_prompt_attempts_must_be_positive(self):
        with pytest.raises(ValidationError):
            PromptEntry(name="user", attempts=0)

    def test_csv_delimiter_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            CsvConfig(fields=["a"], delimiter="")
