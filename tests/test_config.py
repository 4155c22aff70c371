import json
import os
import sys

import pytest

from Bayes_Editor.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.engine_path == "bayes-cmd"
    assert settings.engine_args == []
    assert settings.diff_small_value == 0.0
    assert settings.diff_check_period == 0
    assert settings.open_path == os.path.expanduser("~")
    assert settings.log_level == "INFO"
    assert settings.log_file is None


def test_engine_command_appends_args():
    settings = Settings(engine_path="/opt/bayes", engine_args=["-q"])
    assert settings.engine_command() == ["/opt/bayes", "-q"]


def test_app_placeholder_expands(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "bayes-editor")])
    settings = Settings(engine_path="%APP%/bayes-cmd")
    assert settings.expanded_engine_path() == f"{tmp_path}/bayes-cmd"


def test_load_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "engine_path: /usr/bin/bayes\n"
        "engine_args: [--batch, 3]\n"
        "diff_small_value: 1e-3\n"
        "diff_check_period: '50'\n"
        "log_level: DEBUG\n"
        "window_geometry: ignored\n"
    )
    settings = Settings.load_from_file(str(path))
    assert settings.engine_path == "/usr/bin/bayes"
    assert settings.engine_args == ["--batch", "3"]
    assert settings.diff_small_value == 0.001
    assert settings.diff_check_period == 50
    assert settings.log_level == "DEBUG"


def test_load_json(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"engine_path": "bayes", "diff_check_period": 7}))
    settings = Settings.load_from_file(str(path))
    assert settings.engine_path == "bayes"
    assert settings.diff_check_period == 7


def test_relative_engine_path_resolved_against_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("engine_path: bin/bayes-cmd\n")
    settings = Settings.load_from_file(str(path))
    assert settings.engine_path == os.path.join(str(tmp_path), "bin", "bayes-cmd")


def test_bare_engine_name_left_for_path_lookup(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("engine_path: bayes-cmd\n")
    assert Settings.load_from_file(str(path)).engine_path == "bayes-cmd"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("")
    assert Settings.load_from_file(str(path)) == Settings()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Settings.load_from_file(str(tmp_path / "nope.yaml"))


def test_non_mapping_rejected(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        Settings.load_from_file(str(path))
