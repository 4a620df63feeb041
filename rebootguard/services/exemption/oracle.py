"""
Exemption Oracle

Answers whether this host is exempt from reboot enforcement, resolved
through group membership in a directory service.

Oracles raise ExemptionLookupError; the orchestrator degrades any error
to "not exempt" so enforcement is never silently skipped.
"""

import socket
from abc import ABC, abstractmethod
from urllib.parse import quote

import httpx

from rebootguard.common.config import ExemptionSettings
from rebootguard.common.exceptions import ExemptionLookupError
from rebootguard.common.logging_setup import get_service_logger

logger = get_service_logger("exemption")


def host_identity() -> str:
    """Short host name, lower-cased, as used for directory lookups"""
    return socket.gethostname().split(".")[0].lower()


class ExemptionOracle(ABC):
    """Host exemption lookup"""

    @abstractmethod
    def is_exempt(self, host: str, group: str) -> bool:
        """
        Check if host is a member of the exemption group.

        Raises:
            ExemptionLookupError: If membership could not be determined
        """


class StaticExemptionOracle(ExemptionOracle):
    """Exemption from a host list in the config file"""

    def __init__(self, exempt_hosts: list[str]):
        self.exempt_hosts = {h.split(".")[0].lower() for h in exempt_hosts}

    def is_exempt(self, host: str, group: str) -> bool:
        return host.split(".")[0].lower() in self.exempt_hosts


class DirectoryExemptionOracle(ExemptionOracle):
    """
    Group membership from a directory REST endpoint.

    GET {url}/groups/{group}/members/{host}
      200 -> member, 404 -> not a member, anything else -> lookup error
    """

    def __init__(
        self,
        directory_url: str,
        token: str = "",
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.directory_url = directory_url.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def is_exempt(self, host: str, group: str) -> bool:
        url = (
            f"{self.directory_url}/groups/{quote(group, safe='')}"
            f"/members/{quote(host, safe='')}"
        )

        try:
            if self._client is not None:
                response = self._client.get(
                    url, headers=self._headers(), timeout=self.timeout_seconds
                )
            else:
                with httpx.Client() as client:
                    response = client.get(
                        url, headers=self._headers(), timeout=self.timeout_seconds
                    )
        except httpx.HTTPError as e:
            raise ExemptionLookupError(f"HTTP error querying directory: {e}", host, group)

        if response.status_code == 404:
            return False
        if response.status_code == 200:
            return True

        raise ExemptionLookupError(
            f"Unexpected directory response {response.status_code}", host, group
        )


class ChainedExemptionOracle(ExemptionOracle):
    """Exempt if any oracle says so; first lookup error propagates"""

    def __init__(self, oracles: list[ExemptionOracle]):
        self.oracles = oracles

    def is_exempt(self, host: str, group: str) -> bool:
        for oracle in self.oracles:
            if oracle.is_exempt(host, group):
                logger.debug(
                    f"{host} exempt via {type(oracle).__name__}",
                    extra={"host": host, "group": group},
                )
                return True
        return False


def create_oracle(settings: ExemptionSettings) -> ExemptionOracle:
    """Build the oracle chain from config: static list first, then directory"""
    oracles: list[ExemptionOracle] = []
    if settings.exempt_hosts:
        oracles.append(StaticExemptionOracle(settings.exempt_hosts))
    if settings.directory_url:
        oracles.append(DirectoryExemptionOracle(
            settings.directory_url,
            token=settings.directory_token,
            timeout_seconds=settings.timeout_seconds,
        ))
    return ChainedExemptionOracle(oracles)
