"""ditestkit: DI container lifecycle for pytest suites.

Builds a dependency injection container from YAML config files, hands it
to tests and tears it down between tests or at the end of the suite.

Usage:
    from ditestkit import ContainerModule, ModuleConfig

    module = ContainerModule(ModuleConfig(temp_dir="tmp", config_files=["config.yaml"]))
    module.before_suite({"path": "tests"})
    container = module.get_container()
    module.after_suite()
"""

from .config import ConfigurationError, ModuleConfig, SuiteSettings
from .module import ContainerModule

__version__ = "0.1.0"

__all__ = [
    "ContainerModule",
    "ModuleConfig",
    "SuiteSettings",
    "ConfigurationError",
]
