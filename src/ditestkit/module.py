"""Container lifecycle management for test suites.

``ContainerModule`` owns at most one live container. It builds the
container lazily from the configured files, hands it (or services
resolved from it) to tests, and tears it down at the end of the suite,
or after every test when ``new_container_for_each_test`` is set.

Typical lifecycle (driven by ditestkit.pytest_plugin):

    module = ContainerModule(ModuleConfig(temp_dir="tmp", config_files=["config.yaml"]))
    module.before_suite({"path": "/project/tests"})
    module.before_test(item)
    mailer = module.grab_service(Mailer)
    module.after_test(item)
    module.after_suite()
"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Type, TypeVar, Union

import pytest

from . import tracing
from .caching.journal import Journal
from .config import ConfigurationError, ModuleConfig, SuiteSettings
from .di.configurator import Configurator
from .di.container import Container
from .di.exceptions import MissingServiceError
from .di.extensions import ExtensionsExtension
from .http.session import Session
from .utils import create_dir, delete, is_absolute, join_path

logger = logging.getLogger(__name__)

T = TypeVar('T')

ConfiguratorHook = Callable[[Configurator], None]
ContainerHook = Callable[[Container], None]


class ContainerModule:
    """Builds, exposes and tears down one DI container per suite or per test."""

    def __init__(self, config: ModuleConfig):
        self.config = config.require_valid()
        self._path: Optional[str] = None
        self._config_files: list[str] = []
        self._container: Optional[Container] = None
        self._configurator_hooks: list[ConfiguratorHook] = []
        self._container_hooks: list[ContainerHook] = []

    # ------------------------------------------------------------------
    # Hook registration
    # ------------------------------------------------------------------
    def add_configurator_hook(self, callback: ConfiguratorHook) -> None:
        """Call ``callback(configurator)`` before every container compile."""
        self._configurator_hooks.append(callback)

    def add_container_hook(self, callback: ContainerHook) -> None:
        """Call ``callback(container)`` after every container compile."""
        self._container_hooks.append(callback)

    # ------------------------------------------------------------------
    # Suite / test lifecycle
    # ------------------------------------------------------------------
    @property
    def path(self) -> str:
        if self._path is None:
            raise ConfigurationError("before_suite() has not been called")
        return self._path

    @property
    def temp_dir(self) -> str:
        return join_path(self.path, self.config.temp_dir)

    @property
    def has_container(self) -> bool:
        return self._container is not None

    def before_suite(self, settings: Union[SuiteSettings, dict, None] = None) -> None:
        if isinstance(settings, dict):
            settings = SuiteSettings.from_dict(settings)
        if settings is None or not settings.path:
            raise ConfigurationError("Suite setting 'path' is required")

        self._path = str(settings.path).rstrip("/")
        self._clear_temp_dir()
        logger.info(f"Container module ready (path={self._path}, temp_dir={self.temp_dir})")

    def before_test(self, test: Any = None) -> None:
        if self.config.new_container_for_each_test:
            self._clear_temp_dir()
            self._container = None
            self._config_files = []

    def after_test(self, test: Any = None) -> None:
        if self.config.new_container_for_each_test:
            self.stop_container()

    def after_suite(self) -> None:
        self.stop_container()
        if self.config.log_dir is not None and self._path is not None:
            tracing.disable_tracing(join_path(self._path, self.config.log_dir))

    # ------------------------------------------------------------------
    # Test-facing API
    # ------------------------------------------------------------------
    def use_config_files(self, config_files: list[str]) -> None:
        """Replace the configured files for the next container of this test."""
        if not self.config.new_container_for_each_test:
            pytest.fail(
                "use_config_files() can only be used if the "
                "new_container_for_each_test option is set to true.",
                pytrace=False,
            )

        if self._container is not None:
            pytest.fail("Can't set config files after the container is created.", pytrace=False)

        self._config_files = list(config_files)

    def get_container(self) -> Container:
        if self._container is None:
            self._create_container()
        return self._container

    def grab_service(self, service_type: Union[Type[T], str]) -> T:
        """Get the unique service of ``service_type``; fail the test otherwise."""
        try:
            return self.get_container().get_by_type(service_type)
        except MissingServiceError as e:
            pytest.fail(str(e), pytrace=False)

    # ------------------------------------------------------------------
    # Container build / teardown
    # ------------------------------------------------------------------
    def _create_container(self) -> None:
        configurator = Configurator(cache=False)
        if self.config.remove_default_extensions:
            configurator.default_extensions = {
                "extensions": ExtensionsExtension,
            }

        # must precede enable_tracing, which reads the debug mode
        if self.config.debug_mode is not None:
            configurator.set_debug_mode(bool(self.config.debug_mode))

        if self.config.log_dir is not None:
            log_dir = join_path(self.path, self.config.log_dir)
            create_dir(log_dir)
            configurator.enable_tracing(log_dir)

        configurator.add_static_parameters({
            "appDir": join_path(self.path, self.config.app_dir),
            "wwwDir": join_path(self.path, self.config.www_dir),
        })

        self._clear_temp_dir()
        configurator.set_temp_directory(self.temp_dir)

        config_files = self._config_files if self._config_files else self.config.config_files
        for file in config_files:
            configurator.add_config(file if is_absolute(file) else join_path(self.path, file))

        for callback in self._configurator_hooks:
            callback(configurator)

        container = configurator.create_container()

        for callback in self._container_hooks:
            callback(container)

        self._container = container
        logger.info(f"Container built from {len(config_files)} config file(s)")

    def stop_container(self) -> None:
        """Close the session, clean the journal and remove the temp dir."""
        if self._container is None:
            return

        container = self._container
        if container.has_type(Session):
            container.get_by_type(Session).close()
        else:
            logger.debug("No session service, skipping session close")

        if container.has_type(Journal):
            journal = container.get_by_type(Journal)
            journal.clean({Journal.ALL: True})
            journal.close()
        else:
            logger.debug("No journal service, skipping journal clean")

        self.delete_temp_dir()
        self._container = None
        logger.info("Container stopped")

    def _clear_temp_dir(self) -> None:
        self.delete_temp_dir()
        create_dir(self.temp_dir)

    def delete_temp_dir(self) -> None:
        if Path(self.temp_dir).is_dir():
            delete(self.temp_dir)
