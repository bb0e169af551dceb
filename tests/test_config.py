from pathlib import Path


def test_settings_from_environment(monkeypatch):
    from impfix.config import Settings

    monkeypatch.setenv("SQLITE_DB_PATH", "/tmp/rules.db")
    monkeypatch.setenv("WEB_PORT", "9001")
    s = Settings(_env_file=None)
    assert s.sqlite_db_path == Path("/tmp/rules.db")
    assert s.sqlite_url == "sqlite:////tmp/rules.db"
    assert s.web_port == 9001
    assert s.log_level == "INFO"
