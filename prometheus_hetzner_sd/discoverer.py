"""
Turns the server inventory of every configured Hetzner project into target
groups.

A project whose API request fails keeps the target groups of its last
successful refresh, so a single broken account or a flaky API never removes
all of its servers from Prometheus.
"""
import logging
import time
from typing import Callable, Dict, List

import attr

from .config import Credential
from .hetzner import HetznerClient, HetznerError
from .metrics import REQUEST_DURATION, REQUEST_FAILURES, TARGETS
from .target_group import TargetGroup

LOGGER = logging.getLogger(__name__)


def default_client_factory(credential: Credential) -> HetznerClient:
    """Build the API client for a credential"""
    return HetznerClient(username=credential.username, password=credential.password)


@attr.s
class Discoverer:
    """Discovers target groups for a list of credentials"""

    credentials: List[Credential] = attr.ib()
    client_factory: Callable[[Credential], HetznerClient] = attr.ib(
        default=default_client_factory
    )
    _groups: Dict[str, List[TargetGroup]] = attr.ib(init=False, factory=dict)

    async def refresh(self) -> List[TargetGroup]:
        """Query every project and return all currently known target groups"""
        for credential in self.credentials:
            try:
                self._groups[credential.project] = await self.discover(credential)
            except HetznerError as err:
                LOGGER.error(f"Failed to fetch servers for project {credential.project}: {err}")
                if credential.project in self._groups:
                    LOGGER.warning(f"Keeping previous targets for project {credential.project}")

            TARGETS.labels(project=credential.project).set(
                len(self._groups.get(credential.project, []))
            )

        return [group for groups in self._groups.values() for group in groups]

    async def discover(self, credential: Credential) -> List[TargetGroup]:
        """Fetch the servers of a single project and map them to target groups

        Servers that cannot be turned into a valid target, e.g., because they
        lack an IP address, are skipped
        """
        client = self.client_factory(credential)

        started = time.monotonic()
        try:
            servers = await client.servers()
        except HetznerError:
            REQUEST_FAILURES.labels(project=credential.project).inc()
            raise
        finally:
            REQUEST_DURATION.labels(project=credential.project).observe(
                time.monotonic() - started
            )

        groups = []
        for server in servers:
            try:
                groups.append(TargetGroup.from_server(credential.project, server))
            except ValueError as err:
                LOGGER.warning(
                    f"Skipping server {server.server_number} of project "
                    f"{credential.project}: {err}"
                )

        LOGGER.debug(f"Discovered {len(groups)} servers for project {credential.project}")
        return groups
