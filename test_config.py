#!/usr/bin/env python3
"""
Test configuration loading and saving.
"""

import json
import sys
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from hanki.utils.config import ConfigManager


def test_defaults_without_file(tmp_path):
    config = ConfigManager(tmp_path / "cfg")
    assert config.get_db_path() == str(tmp_path / "cfg" / "hanki.sqlite")
    assert config.get_leech_threshold() == 8
    assert config.get_rollover_hour() == 4
    assert not (tmp_path / "cfg").exists()


def test_set_persists_to_json(tmp_path):
    config = ConfigManager(tmp_path / "cfg")
    config.set("leech_threshold", 5)

    stored = json.loads((tmp_path / "cfg" / "config.json").read_text())
    assert stored["leech_threshold"] == 5
    assert ConfigManager(tmp_path / "cfg").get_leech_threshold() == 5


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    (tmp_path / "config.json").write_text("{not json")
    config = ConfigManager(tmp_path)
    assert config.get_leech_threshold() == 8


def test_hanki_home_environment_variable(tmp_path, monkeypatch):
    monkeypatch.setenv("HANKI_HOME", str(tmp_path / "home"))
    config = ConfigManager()
    assert config.config_dir == tmp_path / "home"
