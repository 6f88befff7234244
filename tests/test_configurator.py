"""Tests for the Configurator and tracing."""

import logging
import os

import pytest

from ditestkit import tracing
from ditestkit.caching.journal import Journal
from ditestkit.di import Configurator, ExtensionsExtension, InvalidConfigurationError
from ditestkit.di.configurator import CACHE_DIR, detect_debug_mode
from ditestkit.http.session import Session

from sample_services import Clock, Mailer


class TestDebugMode:
    """Tests for debug mode detection and overrides."""

    def test_defaults_to_production(self):
        assert detect_debug_mode() is False
        configurator = Configurator()
        assert configurator.is_debug_mode() is False
        assert configurator.static_parameters["productionMode"] is True

    @pytest.mark.parametrize("value", ["1", "true", "YES"])
    def test_env_var_enables_debug(self, monkeypatch, value):
        monkeypatch.setenv("DITESTKIT_DEBUG", value)
        assert Configurator().is_debug_mode() is True

    def test_set_debug_mode(self):
        configurator = Configurator()
        configurator.set_debug_mode(True)

        assert configurator.is_debug_mode()
        assert configurator.static_parameters["productionMode"] is False


class TestCreateContainer:
    """Tests for Configurator.create_container."""

    def test_builds_from_files(self, project, tmp_path):
        configurator = Configurator()
        configurator.set_temp_directory(tmp_path / "tmp")
        configurator.add_config(project / "config.yaml")

        container = configurator.create_container()

        assert isinstance(container.get_by_type(Mailer), Mailer)
        assert isinstance(container.get_by_type(Clock), Clock)
        assert container.parameters["greeting"] == "hello"
        assert container.parameters["tempDir"] == str(tmp_path / "tmp")

    def test_default_extensions_register_session_and_journal(self, tmp_path):
        configurator = Configurator()
        configurator.set_temp_directory(tmp_path)

        container = configurator.create_container()

        assert container.has_type(Session)
        assert container.has_type(Journal)

    def test_minimal_extensions(self, tmp_path):
        configurator = Configurator()
        configurator.default_extensions = {"extensions": ExtensionsExtension}
        configurator.set_temp_directory(tmp_path)

        container = configurator.create_container()

        assert not container.has_type(Session)
        assert not container.has_type(Journal)

    def test_minimal_extensions_reject_default_sections(self, tmp_path, write_file):
        config = write_file("session.yaml", "session:\n    enabled: false\n")
        configurator = Configurator()
        configurator.default_extensions = {"extensions": ExtensionsExtension}
        configurator.add_config(config)

        with pytest.raises(InvalidConfigurationError, match="Found section 'session'"):
            configurator.create_container()

    def test_static_parameters_visible_to_config(self, tmp_path, write_file):
        config = write_file("params.yaml", "parameters:\n    uploads: '%wwwDir%/uploads'\n")
        configurator = Configurator()
        configurator.add_static_parameters({"wwwDir": "/srv/www"})
        configurator.add_config(config)

        container = configurator.create_container()

        assert container.parameters["uploads"] == "/srv/www/uploads"

    def test_writes_config_cache(self, project, tmp_path):
        configurator = Configurator()
        configurator.set_temp_directory(tmp_path / "tmp")
        configurator.add_config(project / "config.yaml")

        configurator.create_container()

        cached = list((tmp_path / "tmp" / CACHE_DIR).glob("Container_*.yaml"))
        assert len(cached) == 1

    def test_production_mode_reuses_cache(self, tmp_path, write_file):
        config = write_file("c.yaml", "parameters:\n    version: 1\n")

        def build():
            configurator = Configurator()
            configurator.set_debug_mode(False)
            configurator.set_temp_directory(tmp_path / "tmp")
            configurator.add_config(config)
            return configurator.create_container()

        assert build().parameters["version"] == 1
        write_file("c.yaml", "parameters:\n    version: 2\n")

        assert build().parameters["version"] == 1

    def test_debug_mode_revalidates_cache(self, tmp_path, write_file):
        config = write_file("c.yaml", "parameters:\n    version: 1\n")

        def build():
            configurator = Configurator()
            configurator.set_debug_mode(True)
            configurator.set_temp_directory(tmp_path / "tmp")
            configurator.add_config(config)
            return configurator.create_container()

        assert build().parameters["version"] == 1
        mtime = config.stat().st_mtime
        write_file("c.yaml", "parameters:\n    version: 2\n")
        os.utime(config, (mtime + 10, mtime + 10))

        assert build().parameters["version"] == 2

    def test_cache_disabled(self, project, tmp_path):
        configurator = Configurator(cache=False)
        configurator.set_temp_directory(tmp_path / "tmp")
        configurator.add_config(project / "config.yaml")

        configurator.create_container()

        assert not (tmp_path / "tmp").exists()

    def test_no_temp_dir_means_no_cache(self, write_file):
        config = write_file("c.yaml", "parameters:\n    a: 1\n")
        configurator = Configurator()
        configurator.add_config(config)

        container = configurator.create_container()

        assert container.parameters["tempDir"] is None
        assert not container.has_type(Journal)


class TestTracing:
    """Tests for enable_tracing / disable_tracing."""

    def test_errors_go_to_error_log(self, tmp_path):
        tracing.enable_tracing(tmp_path / "log")

        logging.getLogger("ditestkit.test").error("kaboom")
        tracing.disable_tracing()

        assert "kaboom" in (tmp_path / "log" / "error.log").read_text()
        assert not (tmp_path / "log" / "debug.log").exists()

    def test_debug_log_in_debug_mode(self, tmp_path):
        tracing.enable_tracing(tmp_path / "log", debug=True)

        logging.getLogger("ditestkit.test").debug("details")
        tracing.disable_tracing()

        assert "details" in (tmp_path / "log" / "debug.log").read_text()

    def test_idempotent_per_directory(self, tmp_path):
        first = tracing.enable_tracing(tmp_path / "log")
        second = tracing.enable_tracing(tmp_path / "log")

        assert first is second
        handlers = logging.getLogger(tracing.LOGGER_NAME).handlers
        assert sum(1 for h in handlers if h in first) == len(first)

    def test_disable_removes_handlers(self, tmp_path):
        handlers = tracing.enable_tracing(tmp_path / "log")

        tracing.disable_tracing(tmp_path / "log")

        assert not tracing.is_tracing(tmp_path / "log")
        assert not any(h in logging.getLogger(tracing.LOGGER_NAME).handlers for h in handlers)

    def test_configurator_enable_tracing_sets_log_dir(self, tmp_path):
        configurator = Configurator()
        configurator.enable_tracing(tmp_path / "log")

        assert configurator.static_parameters["logDir"] == str(tmp_path / "log")
        assert tracing.is_tracing(tmp_path / "log")
