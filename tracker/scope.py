"""
scope.py

Decides which hosts have their software tracked.
"""

import ipaddress
from enum import Enum
from typing import Callable, Iterable, List, Optional, Union

from banner.observation import IPAddress, to_address
from utils import app_logger

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class ScopePolicy(Enum):
    """Which hosts are in scope for software tracking."""
    ALL_HOSTS = "all_hosts"
    LOCAL_HOSTS = "local_hosts"
    REMOTE_HOSTS = "remote_hosts"
    NO_HOSTS = "no_hosts"

    @classmethod
    def from_name(cls, name: str) -> "ScopePolicy":
        """
        Accepts values ("local_hosts") and member names ("LOCAL_HOSTS").
        ``disabled`` is an alias for NO_HOSTS.

        Raises:
            ValueError: for an unknown policy name.
        """
        key = name.strip().lower().replace("-", "_")
        if key == "disabled":
            return cls.NO_HOSTS
        for policy in cls:
            if policy.value == key:
                return policy
        available = ", ".join(p.value for p in cls)
        raise ValueError(f"Unknown scope policy '{name}'. Available: {available}")


class HostScope:
    """
    Host-set predicate. Locality comes from a list of local networks
    or from an external ``is_local`` callable supplied by the platform.
    """

    def __init__(
        self,
        local_nets: Optional[Iterable[str]] = None,
        is_local: Optional[Callable[[IPAddress], bool]] = None,
    ) -> None:
        self.logger = app_logger
        self.local_nets: List[Network] = [
            ipaddress.ip_network(net, strict=False) for net in (local_nets or [])
        ]
        self._is_local = is_local

    def is_local(self, host: IPAddress) -> bool:
        if self._is_local is not None:
            return bool(self._is_local(host))
        return any(
            host.version == net.version and host in net
            for net in self.local_nets
        )

    def in_scope(self, host: Union[str, IPAddress], policy: ScopePolicy) -> bool:
        """Return whether ``host`` is tracked under ``policy``."""
        if policy is ScopePolicy.NO_HOSTS:
            return False
        if policy is ScopePolicy.ALL_HOSTS:
            return True

        try:
            address = to_address(host)
        except ValueError:
            self.logger.warning(f"Ignoring observation for unparsable host {host!r}")
            return False

        local = self.is_local(address)
        if policy is ScopePolicy.LOCAL_HOSTS:
            return local
        return not local
