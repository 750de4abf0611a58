import json
import logging

from printshop import config
from printshop import repos as repos_module
from printshop.config import configure_logging, resolve_settings


def test_explicit_data_dir_is_created(tmp_path, monkeypatch):
    monkeypatch.delenv("PRINTSHOP_LOG_LEVEL", raising=False)
    data_dir = tmp_path / "shop"

    settings = resolve_settings(data_dir)

    assert settings.data_dir == data_dir.resolve()
    assert settings.db_path.name == "printshop.db"
    assert data_dir.is_dir()
    assert settings.log_level == "INFO"
    assert (settings.depot_a_label, settings.depot_b_label) == ("Deepak", "Dimple")


def test_settings_file_and_env_override(tmp_path, monkeypatch):
    (tmp_path / "settings.json").write_text(
        json.dumps({"currency": "USD", "depot_b_label": "Annex", "log_level": "WARNING"}),
        encoding="utf-8",
    )
    monkeypatch.setenv("PRINTSHOP_LOG_LEVEL", "DEBUG")

    settings = resolve_settings(tmp_path)

    assert settings.currency == "USD"
    assert settings.depot_b_label == "Annex"
    assert settings.log_level == "DEBUG"


def test_unreadable_settings_file_is_ignored(tmp_path):
    (tmp_path / "settings.json").write_text("{broken", encoding="utf-8")
    assert resolve_settings(tmp_path).currency == "INR"


def test_configure_logging_adds_one_handler():
    log = configure_logging("debug")
    configure_logging("warning")
    assert len(log.handlers) == 1
    assert log.level == logging.WARNING


def test_chosen_data_dir_wins_over_env(tmp_path, monkeypatch):
    monkeypatch.setattr(config.st, "session_state", {})
    monkeypatch.setenv("PRINTSHOP_DATA_DIR", str(tmp_path / "env"))
    chosen = tmp_path / "chosen"

    config.persist_data_dir(str(chosen))
    settings = config.resolve_settings()

    assert settings.data_dir == chosen.resolve()
    saved = json.loads((chosen / "settings.json").read_text(encoding="utf-8"))
    assert saved["data_dir"] == str(chosen.resolve())


def test_default_repos_use_configured_database(tmp_path, monkeypatch):
    monkeypatch.setattr(repos_module, "get_settings", lambda: config.resolve_settings(tmp_path))

    repos = repos_module.default_repos()
    repos.notes.save("hello")

    assert (tmp_path / "printshop.db").exists()
    assert repos.notes.get() == "hello"
