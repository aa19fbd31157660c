"""
CLI entry point

    opdispatch --app myapp.wiring:create_app routes
    opdispatch --app myapp.wiring:create_app dispatch withdraw --params '{"amount": 50}'

``--app`` names a callable taking Settings and returning an Application
(or an Application instance).
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import json
import sys
from typing import Any, Optional

from pydantic import ValidationError

from opdispatch import __version__
from opdispatch.application.bootstrap import Application
from opdispatch.config.validated_settings import load_validated_settings
from opdispatch.infrastructure.logging import setup_logging


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opdispatch",
        description="opdispatch - business operation dispatch runtime",
    )
    parser.add_argument("--app", "-a", help="application factory, 'package.module:attribute'")
    parser.add_argument("--config", "-c", help="configuration file path")
    parser.add_argument("--version", "-v", action="store_true", help="show version")

    subparsers = parser.add_subparsers(dest="command", help="available commands")

    subparsers.add_parser("routes", help="list registered operation routes")

    dispatch_parser = subparsers.add_parser("dispatch", help="dispatch one operation by route name")
    dispatch_parser.add_argument("name", help="route name")
    dispatch_parser.add_argument("--params", "-p", default="{}", help="JSON object of business parameters")

    return parser


def load_app(path: str, config_path: Optional[str] = None) -> Application:
    module_name, _, attr = path.partition(":")
    if not attr:
        raise ValueError("--app must look like 'package.module:attribute'")
    target: Any = getattr(importlib.import_module(module_name), attr)
    if isinstance(target, Application):
        return target
    return target(load_validated_settings(config_path))


def _print_routes(app: Application) -> None:
    routes = app.routes.all()
    if not routes:
        print("(no routes)")
        return
    width = max(len(name) for name in routes)
    for name, desc in sorted(routes.items()):
        line = f"{name:<{width}}  {desc.category:<13}  {desc.operation.operation_name()}"
        if desc.description:
            line += f"  - {desc.description}"
        print(line)


def run_cli(args: Optional[list] = None) -> int:
    """
    Run the CLI.

    Returns:
        exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.version:
        print(f"opdispatch v{__version__}")
        return 0

    if not parsed.command:
        parser.print_help()
        return 0

    if not parsed.app:
        print("error: --app is required", file=sys.stderr)
        return 2

    app = load_app(parsed.app, parsed.config)
    setup_logging(app.settings.logging)

    if parsed.command == "routes":
        _print_routes(app)
        return 0

    if parsed.command == "dispatch":
        try:
            params = json.loads(parsed.params)
        except json.JSONDecodeError as exc:
            print(f"error: --params is not valid JSON: {exc}", file=sys.stderr)
            return 2
        if not isinstance(params, dict):
            print("error: --params must be a JSON object", file=sys.stderr)
            return 2
        try:
            result = asyncio.run(app.handle_result(parsed.name, params))
        except KeyError as exc:
            print(f"error: {exc.args[0]}", file=sys.stderr)
            return 2
        except ValidationError as exc:
            print(f"error: invalid parameters for {parsed.name}: {exc}", file=sys.stderr)
            return 2
        if not result.is_ok():
            print(f"[{result.kind.value.upper()}] {result.error}", file=sys.stderr)
            return 1
        print(json.dumps(result.to_dict(), ensure_ascii=False, default=str))
        return 0

    parser.print_help()
    return 0


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
