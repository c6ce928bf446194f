import logging.config
from app.core import logging_config
from app.core.config import settings


def test_setup_logging_routes_notifications_to_their_own_file(tmp_path, monkeypatch):
    captured = {}
    monkeypatch.setattr(settings, "LOG_DIR", str(tmp_path))
    monkeypatch.setattr(logging.config, "dictConfig", captured.update)

    logging_config.setup_logging()

    assert {"app", "error", "notifications"} <= {p.name for p in tmp_path.iterdir()}
    notifications = captured["loggers"]["app.services.notification"]
    assert "notifications_file" in notifications["handlers"]
    assert captured["handlers"]["notifications_file"]["filename"].startswith(str(tmp_path / "notifications"))
    assert captured["handlers"]["error_file"]["level"] == "ERROR"
