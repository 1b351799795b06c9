from planner_toolkit.config import ConfigManager


def test_packaged_defaults_are_loaded():
    config = ConfigManager()
    planner = config.get_planner_config()
    assert planner["history"]["max_steps"] == 50
    assert planner["autosave"] == {"enabled": True, "delay": 1.0}
    assert planner["drag"]["scroll_threshold"] == 50
    assert config.get_logging_config()["version"] == 1


def test_config_manager_is_a_singleton():
    assert ConfigManager() is ConfigManager()


def test_user_overrides_merge_per_key(tmp_path, monkeypatch):
    user_dir = tmp_path / "overrides"
    user_dir.mkdir()
    (user_dir / "default_planner.yml").write_text("autosave:\n  delay: 0.25\n", encoding="utf-8")
    monkeypatch.setenv("PLANNER_CONFIG_DIR", str(user_dir))
    ConfigManager.reset()

    config = ConfigManager()
    assert config.user_config_dir == user_dir
    assert config.get("autosave", "delay") == 0.25
    assert config.get("autosave", "enabled") is True
    assert config.get("history", "max_steps") == 50


def test_invalid_user_override_is_ignored(tmp_path, monkeypatch):
    user_dir = tmp_path / "overrides"
    user_dir.mkdir()
    (user_dir / "default_planner.yml").write_text("autosave: [unclosed\n", encoding="utf-8")
    monkeypatch.setenv("PLANNER_CONFIG_DIR", str(user_dir))
    ConfigManager.reset()

    assert ConfigManager().get("autosave", "delay") == 1.0


def test_returned_sections_are_copies():
    config = ConfigManager()
    config.get_planner_config()["history"]["max_steps"] = 1
    assert config.get("history", "max_steps") == 50
    assert config.get("missing", "key", "fallback") == "fallback"
