"""ditestkit CLI: scaffold, inspect and clean container module setups.

Usage:
    ditestkit init                     # write ditestkit.yaml
    ditestkit init --per-test          # one container per test
    ditestkit services                 # build the container, list services
    ditestkit clean                    # remove the temp directory
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import ConfigurationError, ModuleConfig
from .di.exceptions import ContainerError
from .module import ContainerModule

DEFAULT_CONFIG_FILE = "ditestkit.yaml"

CONFIG_TEMPLATE = """\
# ditestkit module configuration
# Paths are relative to the suite path (the pytest rootdir by default).

temp_dir: {temp_dir}

config_files:
  - tests/config/common.yaml

# app_dir: src
# www_dir: www
# log_dir: tests/_log
# debug_mode: true
# remove_default_extensions: false
new_container_for_each_test: {per_test}
"""


def _load_module(args: argparse.Namespace) -> ContainerModule:
    config = ModuleConfig.from_file(args.config)
    module = ContainerModule(config)
    path = args.path or str(Path(args.config).resolve().parent)
    module.before_suite({"path": path})
    return module


def cmd_init(args: argparse.Namespace) -> int:
    """Write a template module config file."""
    config_file = Path(args.config)
    if config_file.exists() and not args.force:
        print(f"Config already exists: {config_file}")
        print("Use --force to overwrite.")
        return 1

    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(CONFIG_TEMPLATE.format(
        temp_dir=args.temp_dir,
        per_test="true" if args.per_test else "false",
    ))
    print(f"Config written: {config_file}")
    print()
    print("Point pytest at it:")
    print("   [tool.pytest.ini_options]")
    print(f'   di_config = "{config_file}"')
    return 0


def cmd_services(args: argparse.Namespace) -> int:
    """Build the container once and list its services."""
    try:
        module = _load_module(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        container = module.get_container()
        for name in container.service_names:
            definition = container.get_definition(name)
            flags = "" if definition.autowired else "  (not autowired)"
            print(f"{name:<30} {definition.describe()}{flags}")
    except ContainerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        module.after_suite()
        module.delete_temp_dir()
    return 0


def cmd_clean(args: argparse.Namespace) -> int:
    """Remove the temp directory."""
    try:
        module = _load_module(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    module.delete_temp_dir()
    print(f"Removed {module.temp_dir}")
    return 0


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="ditestkit",
        description="ditestkit: DI container lifecycle for pytest suites",
    )
    parser.add_argument("--log-level", type=str, default="warning",
                        choices=["debug", "info", "warning", "error"])
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init
    init_parser = subparsers.add_parser("init", help="Write a module config template")
    init_parser.add_argument("--config", "-c", type=str, default=DEFAULT_CONFIG_FILE)
    init_parser.add_argument("--temp-dir", type=str, default="tests/_temp",
                             help="Temp directory name (default: tests/_temp)")
    init_parser.add_argument("--per-test", action="store_true",
                             help="Build a new container for each test")
    init_parser.add_argument("--force", action="store_true",
                             help="Overwrite existing config")

    # services
    services_parser = subparsers.add_parser("services", help="List container services")
    services_parser.add_argument("--config", "-c", type=str, default=DEFAULT_CONFIG_FILE)
    services_parser.add_argument("--path", type=str, default=None,
                                 help="Suite path (default: directory of the config file)")

    # clean
    clean_parser = subparsers.add_parser("clean", help="Remove the temp directory")
    clean_parser.add_argument("--config", "-c", type=str, default=DEFAULT_CONFIG_FILE)
    clean_parser.add_argument("--path", type=str, default=None,
                              help="Suite path (default: directory of the config file)")

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "init":
        sys.exit(cmd_init(args))
    elif args.command == "services":
        sys.exit(cmd_services(args))
    elif args.command == "clean":
        sys.exit(cmd_clean(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
