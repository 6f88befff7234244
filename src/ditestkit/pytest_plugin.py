"""pytest plugin wiring ContainerModule into the test session.

Enable it by pointing the ``di_config`` ini option (or ``--di-config``,
or the DITESTKIT_CONFIG environment variable) at a module config file:

    [tool.pytest.ini_options]
    di_config = "tests/ditestkit.yaml"

Tests then use the ``di_container`` / ``grab_service`` fixtures:

    def test_sends_mail(grab_service):
        mailer = grab_service(Mailer)
"""

import logging
import os
from pathlib import Path
from typing import Callable, Optional

import pytest

from . import hookspecs
from .config import CONFIG_ENV_VAR, ConfigurationError, ModuleConfig
from .di.container import Container
from .module import ContainerModule

logger = logging.getLogger(__name__)

module_key = pytest.StashKey[Optional[ContainerModule]]()

CONFIG_FILES_MARKER = "di_config_files"


def pytest_addhooks(pluginmanager):
    pluginmanager.add_hookspecs(hookspecs)


def pytest_addoption(parser):
    group = parser.getgroup("ditestkit", "DI container lifecycle")
    group.addoption(
        "--di-config",
        dest="di_config",
        default=None,
        help="ditestkit module config file (overrides the di_config ini option)",
    )
    parser.addini("di_config", "ditestkit module config file, relative to rootdir")
    parser.addini("di_path", "Base path for container config files (default: rootdir)")


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        f"{CONFIG_FILES_MARKER}(*files): container config files for this test "
        "(requires new_container_for_each_test)",
    )
    config.stash[module_key] = _create_module(config)


def _create_module(config: pytest.Config) -> Optional[ContainerModule]:
    config_path = (
        config.getoption("di_config")
        or os.environ.get(CONFIG_ENV_VAR)
        or config.getini("di_config")
    )
    if not config_path:
        return None

    path = Path(config_path)
    if not path.is_absolute():
        path = config.rootpath / path

    try:
        module = ContainerModule(ModuleConfig.from_file(path))
    except ConfigurationError as e:
        raise pytest.UsageError(f"ditestkit: {e}") from e

    module.add_configurator_hook(
        lambda configurator: config.hook.pytest_ditestkit_configurator(
            configurator=configurator, module=module
        )
    )
    module.add_container_hook(
        lambda container: config.hook.pytest_ditestkit_container(
            container=container, module=module
        )
    )
    logger.debug(f"ditestkit module configured from {path}")
    return module


def _base_path(config: pytest.Config) -> Path:
    base = config.getini("di_path")
    if not base:
        return config.rootpath
    path = Path(base)
    return path if path.is_absolute() else config.rootpath / path


def _get_module(config: pytest.Config) -> Optional[ContainerModule]:
    return config.stash.get(module_key, None)


@pytest.hookimpl(tryfirst=True)
def pytest_sessionstart(session):
    module = _get_module(session.config)
    if module is None:
        return
    try:
        module.before_suite({"path": str(_base_path(session.config))})
    except ConfigurationError as e:
        raise pytest.UsageError(f"ditestkit: {e}") from e


@pytest.hookimpl(tryfirst=True)
def pytest_runtest_setup(item):
    module = _get_module(item.config)
    if module is None:
        return
    module.before_test(item)

    marker = item.get_closest_marker(CONFIG_FILES_MARKER)
    if marker is not None:
        module.use_config_files(list(marker.args))


@pytest.hookimpl(trylast=True)
def pytest_runtest_teardown(item, nextitem):
    module = _get_module(item.config)
    if module is not None:
        module.after_test(item)


@pytest.hookimpl(trylast=True)
def pytest_sessionfinish(session, exitstatus):
    module = _get_module(session.config)
    if module is not None:
        module.after_suite()


def pytest_report_header(config):
    module = _get_module(config)
    if module is None:
        return None
    scope = "test" if module.config.new_container_for_each_test else "suite"
    return (
        f"ditestkit: {len(module.config.config_files)} config file(s), "
        f"one container per {scope}"
    )


@pytest.fixture
def di_module(request) -> ContainerModule:
    """The active container module."""
    module = _get_module(request.config)
    if module is None:
        pytest.fail(
            "ditestkit is not configured: set the di_config ini option, "
            f"pass --di-config or set {CONFIG_ENV_VAR}.",
            pytrace=False,
        )
    return module


@pytest.fixture
def di_container(di_module) -> Container:
    """The live container, built on first use."""
    return di_module.get_container()


@pytest.fixture
def grab_service(di_module) -> Callable:
    """Resolve a unique service by type; fails the test when missing or ambiguous."""
    return di_module.grab_service
