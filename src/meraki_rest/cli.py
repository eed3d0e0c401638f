#!/usr/bin/env python3
"""
CLI utilities for meraki-rest.

Usage:
    meraki-rest env                          # Dump env vars as JSON
    meraki-rest env --format markdown        # Dump as markdown
    meraki-rest env --format env             # Dump as .env.example
    meraki-rest validate                     # Validate required vars
    meraki-rest request GET /organizations   # Execute one API call
"""

import argparse
import json
import logging
import sys

import structlog

from meraki_rest.clients import Client
from meraki_rest.config import ClientConfig
from meraki_rest.errors import ConfigurationError, MerakiError
from meraki_rest.utils import dump_env_config, validate_env_config

METHODS = ("GET", "POST", "PUT", "DELETE")


def configure_logging(level: str = "WARNING") -> None:
    """Route structlog output to stderr, dropping events below `level`."""
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=numeric,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def _register_env_vars() -> None:
    """Read the client config once so every MERAKI_* variable is registered."""
    try:
        ClientConfig.from_env()
    except ConfigurationError:
        pass  # variables register before the range check runs


def cmd_env(args) -> int:
    """Dump environment variable configuration."""
    _register_env_vars()
    print(dump_env_config(format=args.format, include_values=not args.no_values))
    return 0


def cmd_validate(args) -> int:
    """Validate required environment variables and option ranges."""
    errors = []
    try:
        ClientConfig.from_env()
    except ConfigurationError as exc:
        errors.append(str(exc))
    errors = validate_env_config() + errors

    if errors:
        print("Validation failed:")
        for error in errors:
            print(f"  - {error}")
        return 1
    print("All required environment variables are set.")
    return 0


def cmd_request(args) -> int:
    """Execute a single API call and print the JSON result."""
    body = None
    if args.data is not None:
        try:
            body = json.loads(args.data)
        except ValueError as exc:
            print(f"Invalid JSON for --data: {exc}", file=sys.stderr)
            return 2

    try:
        with Client.from_env() as client:
            method = args.method.upper()
            log_payload = not args.no_log_payload
            if method == "GET":
                result = client.get(args.path, log_payload=log_payload, max_pages=args.max_pages)
            elif method == "DELETE":
                result = client.delete(args.path, log_payload=log_payload)
            elif method == "POST":
                result = client.post(args.path, body, log_payload=log_payload)
            else:
                result = client.put(args.path, body, log_payload=log_payload)
    except MerakiError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        if exc.response is not None and exc.response.content:
            print(exc.response.text, file=sys.stderr)
        return 1

    if result.data is not None:
        print(json.dumps(result.data, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meraki-rest",
        description="Meraki Dashboard REST client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for client events (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # env command
    env_parser = subparsers.add_parser("env", help="Dump environment variables")
    env_parser.add_argument(
        "--format", "-f",
        choices=["json", "markdown", "env"],
        default="json",
        help="Output format (default: json)",
    )
    env_parser.add_argument(
        "--no-values",
        action="store_true",
        help="Exclude current values from output",
    )
    env_parser.set_defaults(func=cmd_env)

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate required variables")
    validate_parser.set_defaults(func=cmd_validate)

    # request command
    request_parser = subparsers.add_parser("request", help="Execute an API call")
    request_parser.add_argument("method", type=str.upper, choices=METHODS)
    request_parser.add_argument("path", help="Path relative to the base URL, e.g. /organizations")
    request_parser.add_argument("--data", "-d", help="JSON request body for POST/PUT")
    request_parser.add_argument("--max-pages", type=int, default=None, help="Page limit for GET")
    request_parser.add_argument(
        "--no-log-payload",
        action="store_true",
        help="Do not log request/response headers and bodies",
    )
    request_parser.set_defaults(func=cmd_request)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
