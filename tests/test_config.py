"""Tests for docpush.config: file, overrides, environment and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from docpush.config import ConfigError, SyncConfig, load_config, parse_column_mappings


@pytest.fixture()
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Project dir with docs/, assets/ and meta.yml; used as cwd."""
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "index.md").write_text("# Index\n")
    (tmp_path / "assets").mkdir()
    (tmp_path / "meta.yml").write_text("title: Demo\n")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _write_config(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_from_file(self, project: Path) -> None:
        config_file = _write_config(
            project / "docpush.yml",
            "articles_path: docs\n"
            "storage_bucket: docs-bucket\n"
            "assets_path: assets\n"
            "storage_assets_dir: static\n"
            "meta_path: meta.yml\n",
        )

        config = load_config(config_file, env={})

        root = project.resolve()
        assert config.articles_path == root / "docs"
        assert config.assets_path == root / "assets"
        assert config.meta_path == root / "meta.yml"
        assert config.storage_bucket == "docs-bucket"
        assert config.storage_assets_dir == "static"
        assert config.storage_articles_dir == "articles"
        assert config.trim_prefixes is True
        assert config.slug_scope == "directory"

    def test_paths_resolve_against_config_dir(
        self,
        project: Path,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path_factory: pytest.TempPathFactory,
    ) -> None:
        config_file = _write_config(
            project / "docpush.yml", "articles_path: docs\nstorage_bucket: b\n"
        )
        monkeypatch.chdir(tmp_path_factory.mktemp("elsewhere"))
        config = load_config(config_file, env={})
        assert config.articles_path == project.resolve() / "docs"

    def test_dashed_keys(self, project: Path) -> None:
        config_file = _write_config(
            project / "docpush.yml",
            "articles-path: docs\nstorage-bucket: b\ntrim-prefixes: false\n",
        )
        config = load_config(config_file, env={})
        assert config.trim_prefixes is False

    def test_overrides_win(self, project: Path) -> None:
        config_file = _write_config(
            project / "docpush.yml", "articles_path: docs\nstorage_bucket: from-file\n"
        )
        config = load_config(
            config_file,
            {"storage_bucket": "from-cli", "meta_path": "meta.yml", "trim_prefixes": None},
            env={},
        )
        assert config.storage_bucket == "from-cli"
        assert config.meta_path == Path("meta.yml")
        assert config.trim_prefixes is True

    def test_missing_default_file_is_allowed(self, project: Path) -> None:
        config = load_config(
            "docpush.yml", {"articles_path": "docs", "storage_bucket": "b"}, env={}
        )
        assert config.articles_path == Path("docs")

    def test_missing_explicit_file(self, project: Path) -> None:
        with pytest.raises(ConfigError, match="File does not exist"):
            load_config(project / "custom.yml", env={})

    def test_unknown_key(self, project: Path) -> None:
        config_file = _write_config(
            project / "docpush.yml", "articles_path: docs\nstorage_bucket: b\nbucket: c\n"
        )
        with pytest.raises(ConfigError, match="Unknown config keys: bucket"):
            load_config(config_file, env={})

    def test_non_mapping_file(self, project: Path) -> None:
        config_file = _write_config(project / "docpush.yml", "- a\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config(config_file, env={})

    @pytest.mark.parametrize(
        ("overrides", "missing"),
        [
            ({"storage_bucket": "b"}, "articles_path"),
            ({"articles_path": "docs"}, "storage_bucket"),
        ],
    )
    def test_required_inputs(self, project: Path, overrides: dict, missing: str) -> None:
        with pytest.raises(ConfigError, match=f"Input '{missing}' is required"):
            load_config(None, overrides, env={})

    def test_environment_fills_github_settings(self, project: Path) -> None:
        config = load_config(
            None,
            {"articles_path": "docs", "storage_bucket": "b"},
            env={"GITHUB_TOKEN": "tok", "GITHUB_REPOSITORY": "acme/demo"},
        )
        assert config.github_token == "tok"
        assert config.repository == "acme/demo"

    def test_explicit_repository_beats_environment(self, project: Path) -> None:
        config = load_config(
            None,
            {"articles_path": "docs", "storage_bucket": "b", "repository": "acme/other"},
            env={"GITHUB_REPOSITORY": "acme/demo"},
        )
        assert config.repository == "acme/other"

    def test_empty_strings_become_none(self, project: Path) -> None:
        config_file = _write_config(
            project / "docpush.yml",
            "articles_path: docs\nstorage_bucket: b\nassets_path: ''\nmeta_table: ''\n",
        )
        config = load_config(config_file, env={})
        assert config.assets_path is None
        assert config.meta_table is None


class TestValidation:
    base = {"articles_path": "docs", "storage_bucket": "b"}

    def test_articles_path_must_exist(self, project: Path) -> None:
        with pytest.raises(ConfigError, match="Directory does not exist"):
            load_config(None, {**self.base, "articles_path": "nope"}, env={})

    def test_articles_path_must_be_directory(self, project: Path) -> None:
        with pytest.raises(ConfigError, match="Path is not a directory"):
            load_config(None, {**self.base, "articles_path": "meta.yml"}, env={})

    def test_meta_path_must_be_file(self, project: Path) -> None:
        with pytest.raises(ConfigError, match="Path is not a file"):
            load_config(None, {**self.base, "meta_path": "docs"}, env={})

    def test_assets_need_storage_dir(self, project: Path) -> None:
        with pytest.raises(ConfigError, match="'storage_assets_dir' is required"):
            load_config(None, {**self.base, "assets_path": "assets"}, env={})

    def test_invalid_slug_scope(self, project: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid slug_scope"):
            load_config(None, {**self.base, "slug_scope": "tree"}, env={})

    def test_slug_cannot_be_dropped_with_table(self, project: Path) -> None:
        with pytest.raises(ConfigError, match="cannot be dropped"):
            load_config(
                None,
                {**self.base, "meta_table": "projects", "column_mappings": {"slug": "_"}},
                env={},
            )

    def test_max_workers(self, project: Path) -> None:
        with pytest.raises(ConfigError, match="max_workers"):
            load_config(None, {**self.base, "max_workers": 0}, env={})

    def test_slug_column(self, project: Path) -> None:
        config = load_config(
            None, {**self.base, "column_mappings": "slug: project_slug"}, env={}
        )
        assert isinstance(config, SyncConfig)
        assert config.slug_column == "project_slug"


class TestParseColumnMappings:
    def test_empty(self) -> None:
        assert parse_column_mappings(None) == {}
        assert parse_column_mappings("") == {}

    def test_yaml_string(self) -> None:
        assert parse_column_mappings("title: name\nversions: _\n") == {
            "title": "name",
            "versions": "_",
        }

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigError, match="Invalid column name mapping: category"):
            parse_column_mappings({"category": "kind"})

    def test_non_string_value(self) -> None:
        with pytest.raises(ConfigError, match="Mapping must be string"):
            parse_column_mappings({"title": 3})

    def test_not_a_mapping(self) -> None:
        with pytest.raises(ConfigError, match="expected a mapping"):
            parse_column_mappings("- title\n")
