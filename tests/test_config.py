import json
import logging

import pytest
from flask import Flask

from searchplus import config_loader
from searchplus.config_loader import (
    DEFAULT_HIDDEN_TABLE_PREFIXES,
    DEFAULT_SKIP_COLUMNS,
    DEFAULT_TYPE_SAMPLE_SIZE,
    MATCH_CONTAINS,
    MATCH_EXACT,
)
from searchplus.search_expression import MODE_AND_PER_COLUMN, MODE_OR


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "appconfig.json"
    monkeypatch.setenv("SEARCHPLUS_CONFIG", str(path))

    def write(content):
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(content), encoding="utf-8")
        return path

    return write


def test_missing_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("SEARCHPLUS_CONFIG", str(tmp_path / "nope.json"))
    assert config_loader.load_app_config() == {}
    assert config_loader.get_default_logic_mode() == MODE_OR
    assert config_loader.get_hidden_table_prefixes() == DEFAULT_HIDDEN_TABLE_PREFIXES


def test_values_are_read_from_file(config_file):
    config_file({
        "default_logic_mode": "AND2",
        "default_match_mode": "exact",
        "skip_columns": ["id", "Secret"],
        "type_sample_size": "5",
        "timezone": "UTC",
    })
    assert config_loader.get_default_logic_mode() == MODE_AND_PER_COLUMN
    assert config_loader.get_default_match_mode() == MATCH_EXACT
    assert config_loader.get_skip_columns() == ("id", "Secret")
    assert config_loader.get_type_sample_size() == 5
    assert config_loader.get_timezone().key == "UTC"


def test_malformed_file_falls_back(config_file, caplog):
    config_file("{not json")
    with caplog.at_level(logging.WARNING, logger="searchplus.config_loader"):
        assert config_loader.load_app_config() == {}
    assert "falling back to defaults" in caplog.text


def test_non_object_file_falls_back(config_file):
    config_file([1, 2, 3])
    assert config_loader.load_app_config() == {}


def test_invalid_values_fall_back(caplog):
    cfg = {
        "default_logic_mode": "xor",
        "default_match_mode": 7,
        "type_sample_size": "many",
        "timezone": "Mars/Olympus",
        "date_column_hints": "(",
        "id_column": "  ",
    }
    with caplog.at_level(logging.WARNING, logger="searchplus.config_loader"):
        assert config_loader.get_default_logic_mode(cfg) == MODE_OR
        assert config_loader.get_default_match_mode(cfg) == MATCH_CONTAINS
        assert config_loader.get_type_sample_size(cfg) == DEFAULT_TYPE_SAMPLE_SIZE
        assert config_loader.get_timezone(cfg) is None
        assert config_loader.get_date_column_hints(cfg).search("created")
    assert config_loader.get_id_column(cfg) == "id"
    assert config_loader.get_type_sample_size({"type_sample_size": 0}) == DEFAULT_TYPE_SAMPLE_SIZE
    assert "xor" in caplog.text


def test_prefixes_may_be_a_string():
    cfg = {"hidden_table_prefixes": "_grist, Tmp;Scratch"}
    assert config_loader.get_hidden_table_prefixes(cfg) == ("_grist", "Tmp", "Scratch")


def test_prefix_lists_are_cleaned():
    cfg = {"skip_columns": ["id", " id ", 3, "", "Note"]}
    assert config_loader.get_skip_columns(cfg) == ("id", "Note")
    assert config_loader.get_skip_columns({"skip_columns": 12}) == DEFAULT_SKIP_COLUMNS


def test_initialize_app_config():
    app = Flask(__name__)
    config_loader.initialize_app_config(app, {"default_match_mode": "starts", "timezone": "UTC"})
    assert app.config["DEFAULT_LOGIC_MODE"] == MODE_OR
    assert app.config["DEFAULT_MATCH_MODE"] == "starts"
    assert app.config["ID_COLUMN"] == "id"
    assert app.config["SKIP_COLUMNS"] == DEFAULT_SKIP_COLUMNS
    assert app.config["TZ"].key == "UTC"


def test_paths_follow_searchplus_home(tmp_path, monkeypatch):
    monkeypatch.delenv("SEARCHPLUS_CONFIG", raising=False)
    monkeypatch.setenv("SEARCHPLUS_HOME", str(tmp_path))
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "appconfig.json").write_text('{"id_column": "rowid"}', encoding="utf-8")
    assert config_loader.base_dir() == tmp_path
    assert config_loader.env_files() == [tmp_path / "backend" / ".env", tmp_path / ".env"]
    assert config_loader.get_id_column() == "rowid"


def test_base_dir_defaults_to_cwd(tmp_path, monkeypatch):
    monkeypatch.delenv("SEARCHPLUS_HOME", raising=False)
    monkeypatch.chdir(tmp_path)
    assert config_loader.base_dir() == tmp_path
