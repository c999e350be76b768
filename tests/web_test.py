import sys
from unittest.mock import MagicMock, patch

import pytest

# Skip all tests on Windows because gunicorn uses Unix-only modules (fcntl)
pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="Gunicorn is not supported on Windows (uses fcntl module)"
)

APP_URI = "assetgate.main:app"


class TestGunicornOptions:
    def test_options_follow_settings(self):
        from assetgate.web import gunicorn_options

        with (
            patch("assetgate.web.settings.backend_host", "127.0.0.1"),
            patch("assetgate.web.settings.backend_port", 9000),
            patch("assetgate.web.settings.workers_count", 3),
        ):
            options = gunicorn_options()

        assert options["bind"] == "127.0.0.1:9000"
        assert options["workers"] == 3
        assert options["worker_class"] == "uvicorn.workers.UvicornWorker"


class TestGunicornApplication:
    """Tests for the custom GunicornApplication class."""

    def test_init_with_options(self):
        from assetgate.web import GunicornApplication

        options = {"bind": "0.0.0.0:8000", "workers": 4}

        with patch.object(GunicornApplication, "load_config"):
            app = GunicornApplication(APP_URI, options=options)

        assert app.app_uri == APP_URI
        assert app.options == options

    def test_load_config_skips_unknown_and_none(self):
        from assetgate.web import GunicornApplication

        options = {"bind": "127.0.0.1:8080", "workers": None, "unknown_setting": "value"}

        with patch("gunicorn.app.base.BaseApplication.__init__", return_value=None):
            app = GunicornApplication(APP_URI, options=options)
            app.cfg = MagicMock()
            app.cfg.settings = {"bind": MagicMock(), "workers": MagicMock()}

            app.load_config()

        app.cfg.set.assert_called_once_with("bind", "127.0.0.1:8080")

    def test_load(self):
        from assetgate.web import GunicornApplication

        with patch("gunicorn.app.base.BaseApplication.__init__", return_value=None):
            with patch("assetgate.web.import_app") as mock_import:
                app = GunicornApplication(APP_URI)
                loaded_app = app.load()

        mock_import.assert_called_once_with(APP_URI)
        assert loaded_app == mock_import.return_value
