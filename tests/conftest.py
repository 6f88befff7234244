"""Pytest fixtures for ditestkit tests."""

import textwrap

import pytest

from ditestkit import ContainerModule, ModuleConfig
from ditestkit import tracing

pytest_plugins = ["pytester"]


@pytest.fixture
def write_file(tmp_path):
    """Write a (dedented) text file under tmp_path and return its path."""
    def _write(relative: str, content: str):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content))
        return path
    return _write


@pytest.fixture
def project(tmp_path, write_file):
    """A suite directory with a basic container config."""
    write_file("config.yaml", """
        parameters:
            greeting: hello

        services:
            mailer: sample_services.SmtpMailer
            clock: sample_services.FixedClock
            repository: sample_services.UserRepository
    """)
    return tmp_path


@pytest.fixture
def make_module(project):
    """Build a ContainerModule for the project with before_suite already called."""
    modules = []

    def _make(**options) -> ContainerModule:
        options.setdefault("temp_dir", "tmp")
        options.setdefault("config_files", ["config.yaml"])
        module = ContainerModule(ModuleConfig(**options))
        module.before_suite({"path": str(project)})
        modules.append(module)
        return module

    yield _make

    for module in modules:
        module.after_suite()


@pytest.fixture(autouse=True)
def _reset_tracing():
    """Detach any log handlers a test left on the ditestkit logger."""
    yield
    tracing.disable_tracing()


@pytest.fixture(autouse=True)
def _no_debug_env(monkeypatch):
    """Keep DITESTKIT_* variables from the outer environment out of tests."""
    monkeypatch.delenv("DITESTKIT_DEBUG", raising=False)
    monkeypatch.delenv("DITESTKIT_CONFIG", raising=False)
