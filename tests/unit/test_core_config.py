from backend.core.config import Settings


def test_defaults(monkeypatch):
    for name in ("INKASSO_STORE_PATH", "INKASSO_POLICY_PATH", "LOG_FORMAT", "READ_MAX_LIMIT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.log_format == "json"
    assert settings.enable_metrics
    assert settings.INKASSO_STORE_PATH == ""
    assert settings.READ_MAX_LIMIT == 100


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("INKASSO_STORE_PATH", "/var/lib/inkasso/cases.json")
    monkeypatch.setenv("LOG_FORMAT", "text")
    monkeypatch.setenv("ENABLE_METRICS", "false")

    settings = Settings()

    assert settings.INKASSO_STORE_PATH == "/var/lib/inkasso/cases.json"
    assert settings.log_format == "text"
    assert not settings.enable_metrics
