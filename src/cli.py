#!/usr/bin/env python3
"""CLI entry point for valet.

Usage:
    valet ensure -f <config> [--value K=V] [--flag F] [--registry N=DIR]
    valet teardown -f <config> [...]
    valet render -f <application> [...]
    valet set-context -f <config> [...]
    valet config show | set-env K=V | set-registry NAME=DIR

A config passed with -f is either a workflow config (optional cluster plus
steps) or a multi-cluster config, recognized by its top-level clusters key.
"""

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

import yaml

from config import GlobalConfig, parse_yaml
from errors import ConfigError, ValetError
from multicluster import MultiClusterConfig
from render import DEFAULT_REGISTRY, DirectoryRegistry, InputParams, Values
from resources import ApplicationRef
from resources.base import to_manifest
from workflow import Config

COMMANDS = {
    "ensure": "Create the cluster and run the workflow",
    "teardown": "Tear down the cluster (or the workflow's steps)",
    "render": "Print the manifests an application would apply",
    "set-context": "Point kubectl at the config's cluster",
    "config": "Show or edit the global config (show/set-env/set-registry)",
}

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def get_version() -> str:
    try:
        return version('kube-valet')
    except PackageNotFoundError:
        return 'dev'


def _setup_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif quiet:
        logging.getLogger().setLevel(logging.WARNING)


def _parse_pairs(items: Optional[list], option: str) -> dict:
    """Parse repeated KEY=VALUE options into a dict (later entries win)."""
    result = {}
    for item in items or []:
        key, sep, value = item.partition('=')
        if not sep or not key:
            raise ConfigError(f"Invalid {option} '{item}'. Expected KEY=VALUE")
        result[key] = value
    return result


def _common_parser(verb: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=f'valet {verb}',
        description=COMMANDS[verb],
    )
    parser.add_argument(
        '--file', '-f',
        required=True,
        help='Path or URL of the YAML document, relative to the registry',
    )
    parser.add_argument(
        '--registry-name',
        default=DEFAULT_REGISTRY,
        help='Registry the file is loaded from (default: %(default)s)',
    )
    parser.add_argument(
        '--value',
        action='append',
        metavar='KEY=VALUE',
        help='Set a value (repeatable); wins over every other source',
    )
    parser.add_argument(
        '--flag',
        action='append',
        metavar='FLAG',
        help='Activate a flag (repeatable)',
    )
    parser.add_argument(
        '--registry',
        action='append',
        metavar='NAME=DIR',
        help='Add a directory registry (repeatable)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging',
    )
    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Only log warnings and errors',
    )
    return parser


def build_params(args, global_config: Optional[GlobalConfig] = None) -> InputParams:
    """Assemble InputParams from CLI options and the global config.

    CLI values are set first so that they win over global env values.
    """
    global_config = global_config or GlobalConfig.load()
    params = InputParams(values=Values(_parse_pairs(args.value, '--value')))
    params = params.merge_values(global_config.env).merge_flags(args.flag)
    registries = dict(global_config.registries)
    registries.update(_parse_pairs(args.registry, '--registry'))
    for name, directory in registries.items():
        params = params.with_registry(name, DirectoryRegistry(directory))
    return params


def load_document(params: InputParams, registry: str, path: str):
    """Load a workflow config or, if it has a clusters key, a multi-cluster config."""
    data = parse_yaml(params.load_file(registry, path), path)
    if 'clusters' in data:
        logger.debug(f"{path} is a multi-cluster config")
        return MultiClusterConfig.from_dict(data)
    return Config.from_dict(data)


def _run(verb: str, argv: list) -> int:
    args = _common_parser(verb).parse_args(argv)
    _setup_logging(args.verbose, args.quiet)
    params = build_params(args)
    try:
        if verb == 'render':
            ref = ApplicationRef(registry=args.registry_name, path=args.file)
            print(to_manifest(ref.render(params)), end='')
            return 0
        document = load_document(params, args.registry_name, args.file)
        if verb == 'ensure':
            document.ensure(params)
        elif verb == 'teardown':
            document.teardown(params)
        else:
            if not isinstance(document, Config):
                raise ConfigError("set-context requires a workflow config with a cluster")
            document.set_context(params)
    except KeyboardInterrupt:
        params.cancel.set()
        logger.warning("Interrupted")
        return 130
    logger.info(f"{verb} complete")
    return 0


def config_main(argv: list) -> int:
    """Show or edit ~/.valet/global.yaml."""
    parser = argparse.ArgumentParser(prog='valet config', description=COMMANDS['config'])
    parser.add_argument('action', choices=['show', 'set-env', 'set-registry'])
    parser.add_argument('pair', nargs='?', metavar='KEY=VALUE')
    args = parser.parse_args(argv)

    global_config = GlobalConfig.load()
    if args.action == 'show':
        print(yaml.safe_dump(global_config.to_dict(), default_flow_style=False), end='')
        return 0
    if not args.pair:
        parser.error(f"{args.action} requires KEY=VALUE")
    key, value = next(iter(_parse_pairs([args.pair], args.action).items()))
    if args.action == 'set-env':
        global_config.env[key] = value
    else:
        global_config.registries[key] = value
    path = global_config.save()
    logger.info(f"Updated {path}")
    return 0


def print_usage() -> None:
    print(f"valet {get_version()}")
    print()
    print("Usage: valet <command> [options]")
    print()
    print("Commands:")
    for name, desc in COMMANDS.items():
        print(f"  {name:<12} {desc}")
    print()
    print("Run 'valet <command> --help' for command-specific options.")


def main(argv: Optional[list] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] in ('-h', '--help'):
        print_usage()
        return 0 if argv else 1
    if argv[0] == '--version':
        print(get_version())
        return 0

    command, rest = argv[0], argv[1:]
    if command not in COMMANDS:
        print(f"Error: Unknown command '{command}'", file=sys.stderr)
        print(f"Available commands: {', '.join(COMMANDS)}", file=sys.stderr)
        return 1
    try:
        if command == 'config':
            return config_main(rest)
        return _run(command, rest)
    except ValetError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
