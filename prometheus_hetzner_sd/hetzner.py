"""
Minimal client for the Hetzner Robot webservice.

Only the server listing is needed for service discovery:

    GET https://robot-ws.your-server.de/server

which returns a list of objects of the form

[
  {
    "server": {
      "server_ip": "123.123.123.123",
      "server_ipv6_net": "2a01:4f8:111:4221::",
      "server_number": 321,
      "server_name": "server1",
      "product": "DS 3000",
      "dc": "NBG1-DC1",
      "traffic": "5 TB",
      "status": "ready",
      "cancelled": false,
      "paid_until": "2010-09-02"
    }
  },
  ...
]

Errors are reported with an error object in the body, e.g.

{"error": {"status": 404, "code": "SERVER_NOT_FOUND", "message": "No server found"}}
"""
import logging
from typing import Any, Dict, List, Optional

import attr
import httpx

LOGGER = logging.getLogger(__name__)

ROBOT_URL = "https://robot-ws.your-server.de"
SERVER_NOT_FOUND = "SERVER_NOT_FOUND"


@attr.s
class HetznerError(Exception):
    """Raised when the Robot webservice could not be queried"""

    message: str = attr.ib()
    status: Optional[int] = attr.ib(default=None)
    code: Optional[str] = attr.ib(default=None)

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} ({self.code})"
        return self.message


@attr.s(slots=True, frozen=True, kw_only=True)
class Server:
    """A dedicated server as described by the Robot webservice"""

    server_number: int = attr.ib()
    server_ip: str = attr.ib(default="")
    server_ipv6_net: str = attr.ib(default="")
    server_name: str = attr.ib(default="")
    product: str = attr.ib(default="")
    dc: str = attr.ib(default="")
    traffic: str = attr.ib(default="")
    status: str = attr.ib(default="")
    flatrate: bool = attr.ib(default=False)
    throttled: bool = attr.ib(default=False)
    cancelled: bool = attr.ib(default=False)
    paid_until: str = attr.ib(default="")

    @classmethod
    def from_dict(cls, server: Dict[str, Any]) -> "Server":
        """Create a Server from the inner object of the server listing

        Fields set to null by the API are treated as missing
        """
        fields = {
            field.name: server[field.name]
            for field in attr.fields(cls)
            if server.get(field.name) is not None
        }
        return cls(**fields)


@attr.s
class HetznerClient:
    """Lists the servers of a single Robot account"""

    username: str = attr.ib()
    password: str = attr.ib(repr=False)
    base_url: str = attr.ib(default=ROBOT_URL)
    timeout: float = attr.ib(default=10.0)
    transport: Optional[httpx.AsyncBaseTransport] = attr.ib(default=None, repr=False)

    async def servers(self) -> List[Server]:
        """Fetch all servers of the account

        An account without any servers is not an error, the API answers with
        a 404 in that case and we return an empty list.
        """
        url = f"{self.base_url.rstrip('/')}/server"
        LOGGER.debug(f"Fetching servers from {url}")

        try:
            async with httpx.AsyncClient(
                auth=(self.username, self.password),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as err:
            raise HetznerError(f"Request to {url} failed: {err}")

        if response.is_success:
            return self._parse_servers(response)

        error = self._parse_error(response)
        if response.status_code == 404 and error.code == SERVER_NOT_FOUND:
            return []

        raise error

    @staticmethod
    def _parse_servers(response: httpx.Response) -> List[Server]:
        """Turn the body of a successful listing into Server objects"""
        try:
            body = response.json()
            return [Server.from_dict(entry["server"]) for entry in body]
        except (ValueError, TypeError, KeyError) as err:
            raise HetznerError(f"Invalid server listing: {err}", status=response.status_code)

    @staticmethod
    def _parse_error(response: httpx.Response) -> HetznerError:
        """Build a HetznerError from an error response

        Falls back to the HTTP status if the body does not contain a Robot
        error object
        """
        try:
            error = response.json()["error"]
            return HetznerError(
                error.get("message") or response.reason_phrase,
                status=error.get("status", response.status_code),
                code=error.get("code"),
            )
        except (ValueError, TypeError, KeyError, AttributeError):
            return HetznerError(
                f"Unexpected response {response.status_code} {response.reason_phrase}",
                status=response.status_code,
            )
