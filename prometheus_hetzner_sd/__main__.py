"""
Main module for prometheus-hetzner-sd, a service discovery for Prometheus
based on the Hetzner Robot webservice.

It periodically lists the servers of one or more Hetzner accounts and writes
them to a file that Prometheus' file-based service discovery can read.

All flags can also be set through environment variables, e.g.

  PROMETHEUS_HETZNER_USERNAME=user PROMETHEUS_HETZNER_PASSWORD=secret \\
    python -m prometheus_hetzner_sd server

If PROMETHEUS_HETZNER_ENV_FILE points to a dotenv file it is loaded before
anything else.
"""
import argparse as ap
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from . import __version__
from .config import (
    LOG_LEVELS,
    MISSING_OUTPUT_FILE,
    Config,
    ConfigError,
    Logs,
    Server,
    Target,
    add_flag_credentials,
    read_config,
    validate,
)
from .logs import setup_logging
from .server import run_server

LOGGER = logging.getLogger("prometheus_hetzner_sd")

TRUE_VALUES = ("1", "t", "true", "y", "yes", "on")


def env_bool(name: str) -> bool:
    """Whether the environment variable is set to a true value"""
    return os.getenv(name, "false").strip().lower() in TRUE_VALUES


def parse_args(argv: Optional[List[str]] = None) -> ap.Namespace:
    """Parses the command-line arguments

    Every flag defaults to its PROMETHEUS_HETZNER_* environment variable, so
    normally the server is started by simply running

      python -m prometheus_hetzner_sd server
    """
    parser = ap.ArgumentParser(
        prog="prometheus-hetzner-sd",
        description="Prometheus Hetzner SD",
        formatter_class=ap.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-v", "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        choices=LOG_LEVELS,
        default=os.getenv("PROMETHEUS_HETZNER_LOG_LEVEL", "info"),
        help="Only log messages with given severity",
    )
    parser.add_argument(
        "--log.pretty",
        dest="log_pretty",
        action=ap.BooleanOptionalAction,
        default=env_bool("PROMETHEUS_HETZNER_LOG_PRETTY"),
        help="Enable pretty messages for logging",
    )

    commands = parser.add_subparsers(dest="command", metavar="command")
    server = commands.add_parser(
        "server",
        help="start integrated server",
        formatter_class=ap.ArgumentDefaultsHelpFormatter,
    )
    server.add_argument(
        "--web.address",
        dest="web_address",
        default=os.getenv("PROMETHEUS_HETZNER_WEB_ADDRESS", "0.0.0.0:9000"),
        help="Address to bind the metrics server",
    )
    server.add_argument(
        "--web.path",
        dest="web_path",
        default=os.getenv("PROMETHEUS_HETZNER_WEB_PATH", "/metrics"),
        help="Path to bind the metrics server",
    )
    server.add_argument(
        "--output.file",
        dest="output_file",
        default=os.getenv("PROMETHEUS_HETZNER_OUTPUT_FILE", "/etc/prometheus/hetzner.json"),
        help="Path to write the file_sd config",
    )
    server.add_argument(
        "--output.refresh",
        dest="output_refresh",
        type=int,
        default=os.getenv("PROMETHEUS_HETZNER_OUTPUT_REFRESH", "30"),
        help="Discovery refresh interval in seconds",
    )
    server.add_argument(
        "--hetzner.username",
        dest="hetzner_username",
        default=os.getenv("PROMETHEUS_HETZNER_USERNAME"),
        help="Username for the Hetzner API",
    )
    server.add_argument(
        "--hetzner.password",
        dest="hetzner_password",
        default=os.getenv("PROMETHEUS_HETZNER_PASSWORD"),
        help="Password for the Hetzner API",
    )
    server.add_argument(
        "--hetzner.config",
        dest="hetzner_config",
        default=os.getenv("PROMETHEUS_HETZNER_CONFIG"),
        help="Path to Hetzner configuration file",
    )

    args = parser.parse_args(argv)
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid log.level {args.log_level}, choose from {', '.join(LOG_LEVELS)}")

    if args.command is None:
        parser.print_help()
        parser.exit(1)

    return args


def build_config(args: ap.Namespace) -> Config:
    """Turn the parsed arguments into a validated Config

    Raises a ConfigError if anything required is missing
    """
    config = Config(
        server=Server(addr=args.web_address, path=args.web_path),
        logs=Logs(level=args.log_level, pretty=args.log_pretty),
        target=Target(file=args.output_file, refresh=args.output_refresh),
    )

    if args.hetzner_config:
        try:
            read_config(args.hetzner_config, config)
        except ConfigError as err:
            LOGGER.error("Failed to read config")
            raise err

    if not config.target.file:
        raise ConfigError(MISSING_OUTPUT_FILE)

    if args.hetzner_username is not None and args.hetzner_password is not None:
        add_flag_credentials(config, args.hetzner_username, args.hetzner_password)

    validate(config)
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command given on the command line, returns the exit code"""
    if env_file := os.getenv("PROMETHEUS_HETZNER_ENV_FILE"):
        load_dotenv(env_file)

    args = parse_args(argv)
    setup_logging(args.log_level, args.log_pretty)

    try:
        run_server(build_config(args))
    except ConfigError as err:
        LOGGER.error(f"{err}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
