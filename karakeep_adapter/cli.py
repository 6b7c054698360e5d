"""
Command-line interface for the Karakeep Adapter.

Runs raw API requests or resource operations against a Karakeep instance and
prints the results as JSON.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from karakeep_adapter import __version__
from karakeep_adapter.config.settings import ConfigurationManager
from karakeep_adapter.core.api_request import KarakeepApiRequest
from karakeep_adapter.core.context import HttpxContext
from karakeep_adapter.core.data_models import (
    HTTP_METHODS,
    ApiRequestOptions,
    KarakeepCredentials,
)
from karakeep_adapter.core.dispatcher import ResourceDispatcher
from karakeep_adapter.core.transport import KarakeepTransport
from karakeep_adapter.resources import RESOURCE_CLASSES
from karakeep_adapter.utils.credential_validator import validate_karakeep_credentials
from karakeep_adapter.utils.error_handler import (
    ConfigurationError,
    KarakeepAdapterError,
)
from karakeep_adapter.utils.logging_setup import setup_logging

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2


def parse_param(raw: str) -> tuple:
    """
    Parse a ``key=value`` option.

    Values that parse as JSON (numbers, booleans, arrays, objects) are
    decoded; anything else stays a string.
    """
    if "=" not in raw:
        raise argparse.ArgumentTypeError(f"Expected key=value, got: {raw}")
    key, value = raw.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError(f"Empty parameter name in: {raw}")
    try:
        return key, json.loads(value)
    except ValueError:
        return key, value


class CLIInterface:
    """Command line interface for the Karakeep API."""

    def __init__(self):
        self.parser = self._create_parser()
        self.logger = logging.getLogger(__name__)

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="karakeep-adapter",
            description="Karakeep Adapter - rate-limited, retrying Karakeep API client",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  karakeep-adapter test-connection
  karakeep-adapter request GET bookmarks --param limit=10
  karakeep-adapter run bookmarks create --param url=https://example.com
  karakeep-adapter run tags delete --param tag_id=abc --param force=true
  karakeep-adapter --create-config karakeep_config.toml

Configuration:
  Settings are read from --config, ./karakeep_config.toml or
  ~/.config/karakeep-adapter/config.toml. Credentials may also come from
  the KARAKEEP_INSTANCE_URL and KARAKEEP_API_KEY environment variables.
            """,
        )

        parser.add_argument(
            "--version", "-V", action="version", version=f"%(prog)s {__version__}"
        )
        parser.add_argument(
            "--create-config",
            metavar="PATH",
            help="Write a sample configuration file (TOML, or JSON for .json) and exit",
        )
        parser.add_argument(
            "--config", "-c", help="Configuration file path (TOML or JSON format)"
        )
        parser.add_argument("--instance-url", help="Karakeep instance URL")
        parser.add_argument("--api-key", help="Karakeep API key")
        parser.add_argument(
            "--max-retries", "-m", type=int, help="Maximum retry attempts (default: 3)"
        )
        parser.add_argument(
            "--rps",
            type=float,
            dest="requests_per_second",
            help="Maximum requests per second (default: 10)",
        )
        parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable debug logging"
        )

        subparsers = parser.add_subparsers(dest="command")

        subparsers.add_parser(
            "test-connection", help="Check that the instance and API key work"
        )

        request_parser = subparsers.add_parser("request", help="Send a raw API request")
        request_parser.add_argument(
            "method", type=str.upper, choices=HTTP_METHODS, help="HTTP method"
        )
        request_parser.add_argument(
            "endpoint", help="Endpoint relative to /api/v1, e.g. bookmarks"
        )
        request_parser.add_argument(
            "--param",
            "-p",
            action="append",
            type=parse_param,
            default=[],
            help="Query parameter as key=value (repeatable)",
        )
        request_parser.add_argument("--body", help="JSON request body")

        run_parser = subparsers.add_parser("run", help="Run a resource operation")
        run_parser.add_argument(
            "resource", choices=sorted(RESOURCE_CLASSES), help="Resource name"
        )
        run_parser.add_argument("operation", help="Operation name, e.g. get_all")
        run_parser.add_argument(
            "--param",
            "-p",
            action="append",
            type=parse_param,
            default=[],
            help="Operation parameter as key=value (repeatable)",
        )
        run_parser.add_argument(
            "--continue-on-fail",
            action="store_true",
            help="Report errors as output instead of failing",
        )

        return parser

    def parse_args(self, args=None) -> argparse.Namespace:
        """Parse command line arguments."""
        return self.parser.parse_args(args)

    def load_configuration(self, args: argparse.Namespace) -> ConfigurationManager:
        """Load configuration and apply command-line overrides."""
        manager = ConfigurationManager(args.config)
        manager.update_from_cli_args(
            {
                "instance_url": args.instance_url,
                "api_key": args.api_key,
                "max_retries": args.max_retries,
                "requests_per_second": args.requests_per_second,
                "timeout": args.timeout,
                "log_level": "DEBUG" if args.verbose else None,
            }
        )
        return manager

    def _handle_create_config(self, output: str) -> int:
        output_path = Path(output)
        if output_path.exists():
            print(f"Configuration file already exists: {output_path}", file=sys.stderr)
            return EXIT_ERROR

        file_format = "json" if output_path.suffix.lower() == ".json" else "toml"
        ConfigurationManager.create_sample_config(output_path, file_format)
        print(f"Created configuration file: {output_path}")
        print("Edit it to add your instance URL and API key.")
        return EXIT_OK

    async def _execute(
        self, args: argparse.Namespace, manager: ConfigurationManager
    ) -> Any:
        config = manager.config
        credentials = manager.get_credentials()

        async with HttpxContext(
            credentials, verify=config.network.verify_ssl
        ) as context:
            api = KarakeepApiRequest(
                context,
                retry_config=manager.retry_config(),
                rate_limit_config=manager.rate_limit_config(),
                transport=KarakeepTransport(context, timeout=config.network.timeout),
            )

            if args.command == "test-connection":
                is_valid, errors = validate_karakeep_credentials(
                    credentials
                    or KarakeepCredentials(config.credentials.instance_url, "")
                )
                if not is_valid:
                    return {"success": False, "errors": errors}
                ok = await api.test_connection()
                return {"success": ok}

            if args.command == "request":
                body = json.loads(args.body) if args.body else None
                response = await api.request(
                    ApiRequestOptions(
                        method=args.method,
                        endpoint=args.endpoint,
                        body=body,
                        params=dict(args.param) or None,
                    )
                )
                return response.to_dict()

            dispatcher = ResourceDispatcher(api)
            results = await dispatcher.execute(
                args.resource,
                args.operation,
                [dict(args.param)],
                continue_on_fail=args.continue_on_fail,
            )
            return [result["json"] for result in results]

    def run(self, args: Optional[List[str]] = None) -> int:
        """Execute CLI interface."""
        parsed_args = self.parse_args(args)

        if parsed_args.create_config:
            return self._handle_create_config(parsed_args.create_config)

        if not parsed_args.command:
            self.parser.print_help()
            return EXIT_ERROR

        try:
            manager = self.load_configuration(parsed_args)
        except ConfigurationError as e:
            print(e.message, file=sys.stderr)
            return EXIT_CONFIG_ERROR

        setup_logging(level=manager.config.log_level)
        self.logger.debug(f"Running command: {parsed_args.command}")

        try:
            result = asyncio.run(self._execute(parsed_args, manager))
        except ConfigurationError as e:
            self._print_json({"error": e.to_dict()})
            return EXIT_CONFIG_ERROR
        except KarakeepAdapterError as e:
            self._print_json({"error": e.to_dict()})
            return EXIT_ERROR
        except json.JSONDecodeError as e:
            print(f"Invalid JSON body: {e}", file=sys.stderr)
            return EXIT_ERROR
        except KeyboardInterrupt:
            print("Interrupted", file=sys.stderr)
            return 130

        self._print_json(result)

        if parsed_args.command == "test-connection" and not result["success"]:
            return EXIT_ERROR
        return EXIT_OK

    @staticmethod
    def _print_json(data: Any) -> None:
        print(json.dumps(data, indent=2, default=_json_default))


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    return str(value)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    cli = CLIInterface()
    return cli.run(args)


if __name__ == "__main__":
    sys.exit(main())
