"""
Prometheus-hetzner-sd writes a single JSON file for Prometheus' file-based
service discovery mechanism.

The format inside the file is quite simple:

[
  {
    "targets": [ "<host>", ... ],
    "labels": {
      "<labelname>": "<labelvalue>", ...
    }
  },
  ...
]

Every discovered server becomes its own target group whose only target is the
server's main IPv4 address.  All information about the server is attached as
__meta_hetzner_* labels, which Prometheus drops after relabeling unless they
are explicitly kept.

Target groups are identified by their source, "hetzner/<project>/<number>",
which also determines their order within the file.
"""
import json
import re
from typing import Dict, Iterable, List

import attr
import jsonschema
import validators

from .hetzner import Server
from .target_group_schema import FILE_SD_SCHEMA

META_PREFIX = "__meta_hetzner_"

PROJECT_LABEL = f"{META_PREFIX}project"
NUMBER_LABEL = f"{META_PREFIX}number"
NAME_LABEL = f"{META_PREFIX}name"
PRODUCT_LABEL = f"{META_PREFIX}product"
DC_LABEL = f"{META_PREFIX}dc"
IPV4_LABEL = f"{META_PREFIX}ipv4"
IPV6_LABEL = f"{META_PREFIX}ipv6"
TRAFFIC_LABEL = f"{META_PREFIX}traffic"
FLATRATE_LABEL = f"{META_PREFIX}flatrate"
STATUS_LABEL = f"{META_PREFIX}status"
THROTTLED_LABEL = f"{META_PREFIX}throttled"
CANCELLED_LABEL = f"{META_PREFIX}cancelled"
PAID_UNTIL_LABEL = f"{META_PREFIX}paid_until"

LABEL_NAME_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
HOSTNAME_RE = re.compile(r"(?!-)[a-z0-9-]{1,63}(?<!-)$", re.IGNORECASE)


def bool_label(value: bool) -> str:
    """Render a boolean the way Prometheus labels usually do"""
    return "true" if value else "false"


@attr.s(slots=True, kw_only=True)
class TargetGroup:
    """A list of targets sharing the same labels, coming from one source"""

    source: str = attr.ib()
    targets: List[str] = attr.ib(factory=list)
    labels: Dict[str, str] = attr.ib(factory=dict)

    # self is required for the attr validation to work
    # pylint: disable=no-self-use
    @targets.validator
    def validate_targets(self, _: attr.Attribute, targets: List[str]) -> bool:
        """Whether the list of targets only contains valid targets

        Each target must consist of a hostname or IP followed by an optional
        port number
        """
        return all(self.validate_target(target) for target in targets)

    @staticmethod
    def validate_target(target: str) -> bool:
        """Whether a given target is a valid hostname / IP with optional port"""

        def valid_host(host: str) -> bool:
            """Valid hostname, IPv4 address or bracketed IPv6 address"""
            if host.startswith("[") and host.endswith("]"):
                if validators.ipv6(host[1:-1]):
                    return True
                raise ValueError(f"Invalid host {host}")

            if validators.ipv4(host) or validators.ipv6(host):
                return True

            if valid_hostname(host):
                return True

            raise ValueError(f"Invalid host {host}")

        def valid_port(port: str) -> bool:
            """Valid port number excluding the 0 port"""
            if not port.isdigit():
                raise ValueError(f"Port must be integer {port}")

            if int(port) not in range(1, 2 ** 16):
                raise ValueError(f"Invalid port number {port}")
            return True

        if not target.strip():
            raise ValueError("Empty target")

        # a bare IPv6 address has no port
        if target.count(":") > 1 and not target.startswith("["):
            return valid_host(target)

        host, separator, port = target.rpartition(":")
        if not separator or (host.startswith("[") and not host.endswith("]")):
            return valid_host(target)

        if not host.strip():
            raise ValueError("Empty hostname")

        return valid_host(host) and valid_port(port)

    # pylint: disable=no-self-use
    @labels.validator
    def validate_labels(self, _: attr.Attribute, labels: Dict[str, str]) -> bool:
        """Whether the dict of labels conforms to Prometheus standards"""
        return all(
            self.validate_label(label_name, label_value)
            for label_name, label_value in labels.items()
        )

    @staticmethod
    def validate_label(label_name: str, label_value: str) -> bool:
        """Whether a label name and value are valid"""
        if not isinstance(label_value, str):
            raise ValueError(f"For label {label_name}, label value must be a string")

        try:
            label_value.encode("utf-8")
        except UnicodeEncodeError:
            raise ValueError(f"For label {label_name}, invalid label value {label_value}")

        if not LABEL_NAME_RE.fullmatch(label_name):
            raise ValueError(f"Invalid label {label_name}")

        return True

    @classmethod
    def from_server(cls, project: str, server: Server) -> "TargetGroup":
        """Create the target group for a server discovered in project"""
        return cls(
            source=f"hetzner/{project}/{server.server_number}",
            targets=[server.server_ip],
            labels={
                PROJECT_LABEL: project,
                NUMBER_LABEL: str(server.server_number),
                NAME_LABEL: server.server_name,
                PRODUCT_LABEL: server.product,
                DC_LABEL: server.dc,
                IPV4_LABEL: server.server_ip,
                IPV6_LABEL: server.server_ipv6_net,
                TRAFFIC_LABEL: server.traffic,
                FLATRATE_LABEL: bool_label(server.flatrate),
                STATUS_LABEL: server.status,
                THROTTLED_LABEL: bool_label(server.throttled),
                CANCELLED_LABEL: bool_label(server.cancelled),
                PAID_UNTIL_LABEL: server.paid_until,
            },
        )

    def to_dict(self) -> Dict[str, object]:
        """The representation of this group inside the file_sd file"""
        return {"targets": list(self.targets), "labels": dict(sorted(self.labels.items()))}


def file_sd_json(groups: Iterable[TargetGroup]) -> str:
    """Converts target groups into the JSON document Prometheus reads

    Groups are ordered by source so that the same inventory always produces
    the same file.  Groups without targets are left out.

    If the result does not fit the schema raises a TypeError
    """
    content = [
        group.to_dict()
        for group in sorted(groups, key=lambda group: group.source)
        if group.targets
    ]

    try:
        jsonschema.validate(content, FILE_SD_SCHEMA)
    except jsonschema.ValidationError as err:
        raise TypeError(f"Invalid JSON for file_sd: {err.message}")

    return json.dumps(content, indent=2)


@validators.validator
def valid_hostname(hostname: str) -> bool:
    """Validator for hostname

    Taken from https://stackoverflow.com/questions/2532053/validate-a-hostname-string
    """
    if not hostname.strip():
        return False

    if hostname[-1] == ".":
        # strip exactly one dot from the right, if present
        hostname = hostname[:-1]

    if len(hostname) > 253:
        return False

    labels = hostname.split(".")

    # the TLD must be not all-numeric
    if re.match(r"[0-9]+$", labels[-1]):
        return False

    return all(HOSTNAME_RE.match(label) for label in labels)
