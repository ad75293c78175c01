"""Tests for config loading, saving, and error recovery."""

import json

import pytest

import main


@pytest.fixture
def config_file(tmp_path, monkeypatch):
  """Redirect config I/O to a temp directory."""
  path = tmp_path / "config.json"
  monkeypatch.setattr(main, "CONFIG_PATH", str(path))
  return path


class TestLoadConfig:
  def test_creates_default_when_missing(self, config_file):
    assert not config_file.exists()
    cfg = main.load_config()
    assert config_file.exists()
    assert cfg["format"] == "jpg"
    assert cfg["jpeg_quality"] == 90
    assert cfg["gemini_model"] == "gemini-2.5-flash-image"

  def test_reads_existing_config(self, config_file):
    config_file.write_text(json.dumps({"format": "png", "save_folder": "/tmp"}))
    cfg = main.load_config()
    assert cfg["format"] == "png"
    assert cfg["save_folder"] == "/tmp"

  def test_recovers_from_corrupted_json(self, config_file):
    config_file.write_text("{bad json !!!")
    cfg = main.load_config()
    assert cfg == main.DEFAULT_CONFIG
    restored = json.loads(config_file.read_text())
    assert restored["format"] == "jpg"

  def test_recovers_from_non_object_json(self, config_file):
    config_file.write_text("[1, 2, 3]")
    cfg = main.load_config()
    assert cfg == main.DEFAULT_CONFIG

  def test_returns_defaults_on_read_error(self, config_file, monkeypatch):
    # A directory exists but can't be read as a file
    monkeypatch.setattr(main, "CONFIG_PATH", str(config_file.parent))
    cfg = main.load_config()
    assert cfg == main.DEFAULT_CONFIG


class TestMigrateConfig:
  def test_fills_missing_keys(self):
    cfg = {"config_version": 1, "format": "webp"}
    assert main.migrate_config(cfg) is True
    assert cfg["format"] == "webp"
    assert cfg["fetch_timeout"] == main.DEFAULT_CONFIG["fetch_timeout"]

  def test_complete_config_unchanged(self):
    cfg = dict(main.DEFAULT_CONFIG)
    assert main.migrate_config(cfg) is False

  def test_unknown_format_replaced(self):
    cfg = dict(main.DEFAULT_CONFIG, format="gif")
    assert main.migrate_config(cfg) is True
    assert cfg["format"] == "jpg"

  def test_format_lowercased(self):
    cfg = dict(main.DEFAULT_CONFIG, format="PNG")
    main.migrate_config(cfg)
    assert cfg["format"] == "png"

  def test_quality_clamped(self):
    cfg = dict(main.DEFAULT_CONFIG, jpeg_quality=500)
    main.migrate_config(cfg)
    assert cfg["jpeg_quality"] == 100

  def test_bad_timeout_reset(self):
    cfg = dict(main.DEFAULT_CONFIG, fetch_timeout="soon")
    main.migrate_config(cfg)
    assert cfg["fetch_timeout"] == main.DEFAULT_CONFIG["fetch_timeout"]

  def test_old_version_bumped(self):
    cfg = dict(main.DEFAULT_CONFIG, config_version=0)
    assert main.migrate_config(cfg) is True
    assert cfg["config_version"] == main.CONFIG_VERSION

  def test_repaired_config_written_back(self, config_file):
    config_file.write_text(json.dumps({"format": "bmp", "jpeg_quality": 0}))
    cfg = main.load_config()
    assert cfg["format"] == "jpg"
    assert cfg["jpeg_quality"] == 1
    assert json.loads(config_file.read_text())["format"] == "jpg"


class TestSaveConfig:
  def test_writes_valid_json(self, config_file):
    main.save_config({"format": "webp", "save_folder": "/home"})
    data = json.loads(config_file.read_text())
    assert data["format"] == "webp"

  def test_handles_write_error_gracefully(self, config_file, monkeypatch):
    monkeypatch.setattr(main, "CONFIG_PATH", str(config_file.parent / "no" / "such" / "dir" / "config.json"))
    # Should not raise
    main.save_config({"format": "png"})


class TestDefaultConfig:
  def test_has_all_required_keys(self):
    required = [
      "save_folder", "format", "jpeg_quality", "filename_prefix",
      "filename_suffix", "gemini_model", "gemini_api_key", "fetch_timeout",
    ]
    for key in required:
      assert key in main.DEFAULT_CONFIG, f"Missing key: {key}"
