#!/usr/bin/env python3
"""
LANDLEDGER CLI

Command-line host for the registry chaincode. Plays the role of the ledger
runtime: loads configuration, opens a state store, and forwards init /
invoke / query calls to the chaincode.

Usage:
    landledger [options] <command> [args]

Commands:
    init        Write the init marker and reset the indices
    invoke      Run a state-changing function (initProperty, transfer)
    query       Run a read-only function (readOwner, readSurvey, ...)
    owners      List every indexed owner
    surveys     List every indexed survey
    health      Check registry invariants
    config      Configuration management

Copyright (c) 2026 Landledger. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from typing import Any, List, Optional

import yaml

from landledger import __version__
from landledger.config import ConfigError, get_config_manager
from landledger.errors import ChaincodeError
from landledger.observability import LedgerLayer, configure_logging, get_logger
from landledger.store import InMemoryStateStore, JsonFileStateStore, StateStore, StoreError

logger = get_logger("cli", LedgerLayer.CLI)


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    elif isinstance(data, (dict, list)):
        return _format_text(data)
    return str(data)


def _format_text(data: Any) -> str:
    if isinstance(data, list):
        return "\n".join(
            " ".join(f"{k}={v}" for k, v in row.items()) if isinstance(row, dict) else str(row)
            for row in data
        )
    return "\n".join(f"{k}: {v}" for k, v in data.items())


def _decode_payload(payload: bytes) -> Any:
    """Query results are JSON, except quoted records and raw init markers."""
    text = payload.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


class LedgerCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="landledger",
            description="Land ownership registry chaincode CLI",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"landledger {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=[f.value for f in OutputFormat],
            default=None,
            help="Output format (default: output.format from config)",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress error messages",
        )
        self.parser.add_argument(
            "--state", "-s",
            help="State file (overrides store.path and selects the file backend)",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="YAML configuration file",
        )
        self.parser.add_argument(
            "--log-level",
            choices=["debug", "info", "warning", "error", "critical"],
            help="Log level (default: observability.log_level from config)",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        init = self.subparsers.add_parser("init", help="Write the init marker and reset the indices")
        init.add_argument("value", help="Integer init marker value")

        invoke = self.subparsers.add_parser("invoke", help="Run a state-changing function")
        invoke.add_argument("function", help="initProperty | transfer | init")
        invoke.add_argument("args", nargs="*", help="Positional function arguments")

        query = self.subparsers.add_parser("query", help="Run a read-only function")
        query.add_argument("function", help="readInit | readOwner | readSurvey | readOwnerIndex | readSurveyIndex")
        query.add_argument("args", nargs="*", help="Positional function arguments")

        self.subparsers.add_parser("owners", help="List every indexed owner")
        self.subparsers.add_parser("surveys", help="List every indexed survey")
        self.subparsers.add_parser("health", help="Check registry invariants")

        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")
        config_sub.add_parser("show", help="Show current configuration")
        get_cmd = config_sub.add_parser("get", help="Get a configuration value")
        get_cmd.add_argument("path", help="Config path (e.g., keys.owner_index)")
        config_sub.add_parser("validate", help="Validate configuration")
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            manager = get_config_manager()
            if parsed.config:
                manager.load_from_file(parsed.config)
            obs = manager.config.observability
            configure_logging(
                level=parsed.log_level or obs.log_level.get(),
                fmt=obs.log_format.get(),
            )

            fmt = OutputFormat(parsed.format or manager.config.output.format.get())
            self._exit_code = 0
            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            return self._exit_code

        except ChaincodeError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except ConfigError as e:
            if not parsed.quiet:
                print(f"Config error: {e}", file=sys.stderr)
            return 2

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except StoreError as e:
            if not parsed.quiet:
                print(f"Store error: {e}", file=sys.stderr)
            return 1

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command
        subcmd = getattr(args, "subcommand", None)

        if cmd == "config" and not subcmd:
            raise CLIError("config requires a subcommand (show, get, validate, schema)", exit_code=2)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {cmd} {subcmd or ''}", exit_code=2)

        return handler(args)

    # Store / chaincode wiring
    def _open_store(self, args: argparse.Namespace) -> StateStore:
        store_cfg = get_config_manager().config.store
        if args.state:
            return JsonFileStateStore(args.state)
        if store_cfg.backend.get() == "memory":
            return InMemoryStateStore()
        return JsonFileStateStore(store_cfg.path.get())

    def _chaincode(self, args: argparse.Namespace):
        from landledger.chaincode import LandRegistryChaincode
        return LandRegistryChaincode(self._open_store(args), get_config_manager().config)

    # Chaincode handlers
    def _handle_init(self, args: argparse.Namespace) -> Any:
        self._chaincode(args).init([args.value])
        return {"status": "ok", "function": "init"}

    def _handle_invoke(self, args: argparse.Namespace) -> Any:
        self._chaincode(args).invoke(args.function, args.args)
        return {"status": "ok", "function": args.function}

    def _handle_query(self, args: argparse.Namespace) -> Any:
        payload = self._chaincode(args).query(args.function, args.args)
        return _decode_payload(payload)

    def _handle_owners(self, args: argparse.Namespace) -> Any:
        return [o.to_dict() for o in self._chaincode(args).registry.list_owners()]

    def _handle_surveys(self, args: argparse.Namespace) -> Any:
        return [s.to_dict() for s in self._chaincode(args).registry.list_surveys()]

    def _handle_health(self, args: argparse.Namespace) -> Any:
        from landledger.health import RegistryHealthChecker
        report = RegistryHealthChecker(self._chaincode(args).registry).check()
        if not report.is_healthy:
            self._exit_code = 1
        return report.to_dict()

    # Config handlers
    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        return get_config_manager().config.to_dict()

    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        return {"path": args.path, "value": get_config_manager().get(args.path)}

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        errors = get_config_manager().validate()
        if errors:
            self._exit_code = 1
        return {"valid": not errors, "errors": errors}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        return get_config_manager().export_schema()


def main() -> int:
    """CLI entry point."""
    cli = LedgerCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
