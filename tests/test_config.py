"""
Tests for the configuration system.
"""

import json
from pathlib import Path

from config import (
    GlobalConfig,
    ProjectConfig,
    add_to_history,
    find_markdown_file,
    get_config_path,
    get_current_project_config,
    get_history,
    load_config_file,
    load_global_config,
    load_project_instructions,
    merge_configs,
    save_current_project_config,
    save_global_config,
    strip_jsonc_comments,
)
from core.constants import MAX_HISTORY_ITEMS


class TestStripJSONComments:
    """Test JSONC comment stripping."""

    def test_single_line_comments(self):
        """Test that single-line comments are stripped."""
        jsonc = """
        {
            // This is a comment
            "key": "value"
        }
        """
        result = strip_jsonc_comments(jsonc)
        assert "//" not in result
        assert json.loads(result) == {"key": "value"}

    def test_multi_line_comments(self):
        """Test that multi-line comments are stripped."""
        jsonc = """
        {
            /* This is a
               multi-line comment */
            "key": "value"
        }
        """
        result = strip_jsonc_comments(jsonc)
        assert "/*" not in result
        assert "*/" not in result
        assert json.loads(result) == {"key": "value"}

    def test_mixed_comments(self):
        """Test that mixed comments are stripped."""
        jsonc = """
        {
            // Single line
            "key1": "value1",
            /* Multi
               line */
            "key2": "value2"  // Trailing comment
        }
        """
        result = strip_jsonc_comments(jsonc)
        data = json.loads(result)
        assert data == {"key1": "value1", "key2": "value2"}


class TestMergeConfigs:
    """Test deep merging of config dictionaries."""

    def test_nested_merge(self):
        """Nested dicts merge; scalars are replaced."""
        base = {"a": 1, "nested": {"x": 1, "y": 2}}
        override = {"a": 2, "nested": {"y": 3, "z": 4}}
        assert merge_configs(base, override) == {"a": 2, "nested": {"x": 1, "y": 3, "z": 4}}

    def test_base_not_mutated(self):
        base = {"nested": {"x": 1}}
        merge_configs(base, {"nested": {"x": 2}})
        assert base == {"nested": {"x": 1}}


class TestGlobalConfig:
    """Test loading and saving the global config file."""

    def test_config_path_override(self, isolated_config: Path):
        """KESTREL_CONFIG_PATH points the loader at another file."""
        assert get_config_path() == isolated_config

    def test_missing_file_gives_defaults(self, isolated_config: Path):
        assert not isolated_config.exists()
        assert load_global_config() == GlobalConfig()

    def test_corrupt_file_gives_defaults(self, isolated_config: Path):
        """A corrupt file never blocks startup."""
        isolated_config.write_text("{not json")
        assert load_global_config() == GlobalConfig()

    def test_invalid_values_give_defaults(self, isolated_config: Path):
        isolated_config.write_text(json.dumps({"max_tokens": "lots"}))
        assert load_global_config() == GlobalConfig()

    def test_partial_file_keeps_defaults(self, isolated_config: Path):
        """Keys missing from the file fall back to defaults."""
        isolated_config.write_text(json.dumps({"verbose": True}))
        config = load_global_config()
        assert config.verbose is True
        assert config.large_model == GlobalConfig().large_model

    def test_save_roundtrip(self, isolated_config: Path):
        """Saved configs load back unchanged and leave no temp files behind."""
        config = GlobalConfig(verbose=True, projects={"/work": ProjectConfig(allowed_tools=["LS"])})
        save_global_config(config)
        assert load_global_config() == config
        assert [p.name for p in isolated_config.parent.iterdir() if p.name.startswith(".kestrel")] == []

    def test_load_jsonc_file(self, tmp_path: Path):
        """Files with a .jsonc suffix may carry comments."""
        path = tmp_path / "settings.jsonc"
        path.write_text('{\n  // comment\n  "verbose": true\n}')
        assert load_config_file(path) == {"verbose": True}

    def test_non_object_ignored(self, tmp_path: Path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]")
        assert load_config_file(path) is None


class TestProjectConfig:
    """Test per-project settings."""

    def test_keyed_by_directory(self, tmp_path: Path):
        """Each directory has its own project config."""
        first = tmp_path / "first"
        second = tmp_path / "second"
        save_current_project_config(ProjectConfig(allowed_tools=["LS"]), str(first))
        assert get_current_project_config(str(first)).allowed_tools == ["LS"]
        assert get_current_project_config(str(second)) == ProjectConfig()

    def test_preserves_other_projects(self, tmp_path: Path):
        save_current_project_config(ProjectConfig(context={"a": "1"}), str(tmp_path / "a"))
        save_current_project_config(ProjectConfig(context={"b": "2"}), str(tmp_path / "b"))
        assert get_current_project_config(str(tmp_path / "a")).context == {"a": "1"}


class TestHistory:
    """Test prompt history."""

    def test_most_recent_first(self, tmp_path: Path):
        add_to_history("one", str(tmp_path))
        add_to_history("two", str(tmp_path))
        assert get_history(str(tmp_path)) == ["two", "one"]

    def test_skips_immediate_repeat(self, tmp_path: Path):
        add_to_history("same", str(tmp_path))
        add_to_history("same", str(tmp_path))
        assert get_history(str(tmp_path)) == ["same"]

    def test_capped(self, tmp_path: Path):
        """History keeps only the most recent entries."""
        save_current_project_config(
            ProjectConfig(history=[str(i) for i in range(MAX_HISTORY_ITEMS)]), str(tmp_path)
        )
        add_to_history("newest", str(tmp_path))
        history = get_history(str(tmp_path))
        assert len(history) == MAX_HISTORY_ITEMS
        assert history[0] == "newest"
        assert history[-1] == str(MAX_HISTORY_ITEMS - 2)


class TestMarkdownLoader:
    """Test project instruction file discovery."""

    def test_nearest_ancestor(self, tmp_path: Path):
        """The search walks up from the working directory."""
        (tmp_path / "AGENTS.md").write_text("agents")
        nested = tmp_path / "src" / "pkg"
        nested.mkdir(parents=True)
        assert find_markdown_file(nested) == (tmp_path / "AGENTS.md").resolve()
        assert load_project_instructions(str(nested)) == "agents"

    def test_project_file_priority(self, tmp_path: Path):
        """KESTREL.md wins over AGENTS.md in the same directory."""
        (tmp_path / "AGENTS.md").write_text("agents")
        (tmp_path / "KESTREL.md").write_text("kestrel")
        assert load_project_instructions(str(tmp_path)) == "kestrel"
