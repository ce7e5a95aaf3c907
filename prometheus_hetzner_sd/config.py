"""
Configuration for prometheus-hetzner-sd.

Settings come from command-line flags, which default to environment
variables.  Credentials for the Hetzner Robot webservice may additionally be
read from a configuration file in YAML, JSON or TOML format:

credentials:
  - project: customer1
    username: "#ws+abcdef"
    password: secret

Each credential names a project, the project ends up as a label on every
target discovered with that credential.
"""
import json
import os
import re
from typing import Any, List, MutableMapping

import attr
import jsonschema
import toml
import yaml

from .config_schema import CONFIG_FILE_SCHEMA

MISSING_OUTPUT_FILE = "Missing path for output.file"
MISSING_HETZNER_USERNAME = "Missing required hetzner.username"
MISSING_HETZNER_PASSWORD = "Missing required hetzner.password"
MISSING_ANY_CREDENTIALS = "Missing any credentials"

LOG_LEVELS = ("debug", "info", "warn", "error")

ADDRESS_RE = re.compile(r"^(\[[0-9a-fA-F:.]+\]|[^:\[\]]*):(?P<port>[0-9]{1,5})$")


@attr.s
class ConfigError(Exception):
    """Raised whenever the configuration is unusable"""

    message: str = attr.ib()

    def __str__(self) -> str:
        return self.message


@attr.s(slots=True, kw_only=True)
class Credential:
    """Robot webservice login for a single project"""

    project: str = attr.ib()
    username: str = attr.ib()
    password: str = attr.ib(repr=False)


@attr.s(slots=True, kw_only=True)
class Server:
    addr: str = attr.ib(default="0.0.0.0:9000")
    path: str = attr.ib(default="/metrics")


@attr.s(slots=True, kw_only=True)
class Logs:
    level: str = attr.ib(default="info")
    pretty: bool = attr.ib(default=False)


@attr.s(slots=True, kw_only=True)
class Target:
    file: str = attr.ib(default="/etc/prometheus/hetzner.json")
    refresh: int = attr.ib(default=30)
    credentials: List[Credential] = attr.ib(factory=list)


@attr.s(slots=True, kw_only=True)
class Config:
    """Everything needed to run the discovery server"""

    server: Server = attr.ib(factory=Server)
    logs: Logs = attr.ib(factory=Logs)
    target: Target = attr.ib(factory=Target)


def parse_config_file(path: str) -> MutableMapping[str, Any]:
    """Parse the config file based on its extension

    Raises a ConfigError for unknown extensions, unreadable files and
    contents that cannot be parsed
    """
    _, extension = os.path.splitext(path)
    extension = extension.lower()

    try:
        with open(path, encoding="utf-8") as file_obj:
            if extension in (".yml", ".yaml"):
                return yaml.safe_load(file_obj) or {}
            if extension == ".json":
                return json.load(file_obj)
            if extension == ".toml":
                return toml.load(file_obj)
    except OSError as err:
        raise ConfigError(f"Failed to read config file {path}: {err}")
    except (yaml.YAMLError, ValueError, toml.TomlDecodeError) as err:
        raise ConfigError(f"Failed to parse config file {path}: {err}")

    raise ConfigError(f"Unknown config file format {extension or path}")


def read_config(path: str, config: Config) -> None:
    """Read credentials from the config file at path into config"""
    content = parse_config_file(path)

    try:
        jsonschema.validate(content, CONFIG_FILE_SCHEMA)
    except jsonschema.ValidationError as err:
        raise ConfigError(f"Invalid config file {path}: {err.message}")

    for credential in content["credentials"]:
        config.target.credentials.append(
            Credential(
                project=credential["project"],
                username=credential["username"],
                password=credential["password"],
            )
        )


def add_flag_credentials(config: Config, username: str, password: str) -> None:
    """Add the credentials given by flags or environment as the default project

    Only called if both a username and a password have been set, even when
    they are empty
    """
    config.target.credentials.append(
        Credential(project="default", username=username, password=password)
    )

    if not username:
        raise ConfigError(MISSING_HETZNER_USERNAME)

    if not password:
        raise ConfigError(MISSING_HETZNER_PASSWORD)


def validate(config: Config) -> None:
    """Make sure the configuration is complete enough to run the server"""
    if not config.target.file:
        raise ConfigError(MISSING_OUTPUT_FILE)

    if not config.target.credentials:
        raise ConfigError(MISSING_ANY_CREDENTIALS)

    projects = [credential.project for credential in config.target.credentials]
    duplicates = sorted({project for project in projects if projects.count(project) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate credentials for project {', '.join(duplicates)}")

    if config.target.refresh <= 0:
        raise ConfigError(f"Invalid output.refresh {config.target.refresh}, must be positive")

    if not config.server.path.startswith("/"):
        raise ConfigError(f"Invalid web.path {config.server.path}, must start with /")

    address = ADDRESS_RE.match(config.server.addr)
    if not address:
        raise ConfigError(f"Invalid web.address {config.server.addr}, expected host:port")

    if int(address.group("port")) not in range(1, 2 ** 16):
        raise ConfigError(f"Invalid port number in web.address {config.server.addr}")

    if config.logs.level not in LOG_LEVELS:
        raise ConfigError(f"Invalid log.level {config.logs.level}")
