"""Tests for config module."""


def test_settings_defaults():
    from proofsnap.config import Settings

    s = Settings()
    assert s.version == "1.0.0"
    assert s.env == "test"  # set by conftest
    assert s.oracle_timeout == 30.0
    assert s.anchor_timeout == 60.0
    assert s.api_base_url == "http://localhost:3001"
    assert s.database_url == "memory://"


def test_settings_is_production():
    from proofsnap.config import Settings

    s = Settings(env="production")
    assert s.is_production is True

    s2 = Settings(env="development")
    assert s2.is_production is False


def test_anchor_configured():
    from proofsnap.config import Settings

    assert Settings(anchor_url="").anchor_configured is False
    assert Settings(anchor_url="  ").anchor_configured is False
    assert Settings(anchor_url="http://gateway:8545").anchor_configured is True


def test_cloud_configured_rejects_placeholders(monkeypatch):
    from proofsnap.config import Settings

    monkeypatch.setenv("SUPABASE_URL", "https://your-project.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "a-long-enough-key")
    assert Settings().cloud_configured is False

    monkeypatch.setenv("SUPABASE_URL", "https://abc.supabase.co")
    assert Settings().cloud_configured is True

    monkeypatch.setenv("SUPABASE_KEY", "short")
    assert Settings().cloud_configured is False


def test_configure_logging_json(capsys):
    import json
    import logging

    from proofsnap.config import Settings
    from proofsnap.logging_config import configure_logging

    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        configure_logging(Settings(log_json=True, log_level="INFO"))
        logging.getLogger("proofsnap.test").info("hello %s", "world", extra={"record_id": "abc"})
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
    line = capsys.readouterr().err.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["event"] == "hello world"
    assert payload["level"] == "info"
    assert payload["logger"] == "proofsnap.test"
    assert payload["record_id"] == "abc"
    assert "timestamp" in payload
    assert logging.getLogger("httpx").level == logging.WARNING


def test_configure_logging_console_keeps_exceptions(capsys):
    import logging

    from proofsnap.config import Settings
    from proofsnap.logging_config import configure_logging

    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        configure_logging(Settings(log_json=False, log_level="WARNING"))
        log = logging.getLogger("proofsnap.test")
        log.info("quiet")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            log.exception("stage failed")
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
    err = capsys.readouterr().err
    assert "quiet" not in err
    assert "stage failed" in err
    assert "RuntimeError: boom" in err
