"""
observation.py

Defines the software observation records shared across the project.
An observation is one sighting of a software name and version on a host,
as reported by a protocol analyzer.
"""

import ipaddress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

UNSPECIFIED_HOST: IPAddress = ipaddress.ip_address("0.0.0.0")

SOFTWARE_VERSION_CHANGE = "Software_Version_Change"


class SoftwareCategory(Enum):
    """
    What kind of software an observation describes.
    Purely descriptive; never used for comparison or deduplication.
    """
    UNKNOWN = "UNKNOWN"
    WEB_SERVER = "WEB_SERVER"
    WEB_BROWSER = "WEB_BROWSER"
    MAIL_SERVER = "MAIL_SERVER"
    MAIL_CLIENT = "MAIL_CLIENT"
    FTP_SERVER = "FTP_SERVER"
    FTP_CLIENT = "FTP_CLIENT"
    BROWSER_PLUGIN = "BROWSER_PLUGIN"
    WEBAPP = "WEBAPP"
    DATABASE_SERVER = "DATABASE_SERVER"
    PRINTER = "PRINTER"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "SoftwareCategory":
        """Map a case-insensitive category name to a member, UNKNOWN if unrecognised."""
        if not name:
            return cls.UNKNOWN
        try:
            return cls[name.strip().upper().replace("-", "_")]
        except KeyError:
            return cls.UNKNOWN


def to_address(host: Union[str, IPAddress, None]) -> IPAddress:
    """
    Normalise a host to an ipaddress object.

    Raises:
        ValueError: if ``host`` is text that is not an IP address.
    """
    if host is None:
        return UNSPECIFIED_HOST
    if isinstance(host, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return host
    return ipaddress.ip_address(str(host).strip())


@dataclass(frozen=True, order=True)
class StructuredVersion:
    """
    A version split into three numeric parts and a free-text suffix.

    Field order matters: the generated ordering compares
    (major, minor, minor2, addl) lexicographically.
    """
    major: int = 0
    minor: int = 0
    minor2: int = 0
    addl: str = ""


def format_version(version: StructuredVersion) -> str:
    """Render ``major.minor.minor2`` with ``-addl`` appended when present."""
    text = f"{version.major}.{version.minor}.{version.minor2}"
    if version.addl:
        text += f"-{version.addl}"
    return text


@dataclass(frozen=True)
class Connection:
    """
    The connection an analyzer saw the software on.
    """
    orig_h: IPAddress
    resp_h: IPAddress
    orig_p: int = 0
    resp_p: int = 0
    uid: str = ""

    @classmethod
    def create(
        cls,
        orig_h: Union[str, IPAddress],
        resp_h: Union[str, IPAddress],
        orig_p: int = 0,
        resp_p: int = 0,
        uid: str = "",
    ) -> "Connection":
        return cls(
            orig_h=to_address(orig_h),
            resp_h=to_address(resp_h),
            orig_p=orig_p,
            resp_p=resp_p,
            uid=uid,
        )


@dataclass(frozen=True)
class Observation:
    """
    A single software sighting. Never mutated; a newer observation for the
    same (host, name) supersedes it in the registry.
    """
    timestamp: datetime
    name: str
    version: StructuredVersion
    raw_unparsed_version: str
    host: IPAddress = UNSPECIFIED_HOST
    software_category: SoftwareCategory = SoftwareCategory.UNKNOWN
    host_port: Optional[int] = None
    force_log: bool = False

    @classmethod
    def create(
        cls,
        name: str = "",
        version: Optional[StructuredVersion] = None,
        raw_unparsed_version: Optional[str] = None,
        host: Union[str, IPAddress, None] = None,
        software_category: SoftwareCategory = SoftwareCategory.UNKNOWN,
        timestamp: Optional[datetime] = None,
        host_port: Optional[int] = None,
        force_log: bool = False,
    ) -> "Observation":
        """
        Build an observation with the documented defaults.

        ``raw_unparsed_version`` is always populated: when the analyzer
        has no raw banner, the name and formatted version stand in for it.

        Raises:
            ValueError: if ``host`` is not a valid IP address.
        """
        version = version or StructuredVersion()
        if raw_unparsed_version is None:
            raw_unparsed_version = f"{name} {format_version(version)}".strip()

        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            name=name,
            version=version,
            raw_unparsed_version=raw_unparsed_version,
            host=to_address(host),
            software_category=software_category,
            host_port=host_port,
            force_log=force_log,
        )

    def with_host(
        self,
        host: Union[str, IPAddress],
        software_category: Optional[SoftwareCategory] = None,
        host_port: Optional[int] = None,
    ) -> "Observation":
        """Return a copy attributed to ``host`` (parser output carries no host)."""
        return Observation(
            timestamp=self.timestamp,
            name=self.name,
            version=self.version,
            raw_unparsed_version=self.raw_unparsed_version,
            host=to_address(host),
            software_category=software_category or self.software_category,
            host_port=host_port if host_port is not None else self.host_port,
            force_log=self.force_log,
        )

    def to_record(self) -> dict:
        """Flatten into the field layout written to the software log."""
        return {
            "ts": self.timestamp.isoformat(),
            "host": str(self.host),
            "host_port": self.host_port,
            "software_category": self.software_category.value,
            "name": self.name,
            "version_major": self.version.major,
            "version_minor": self.version.minor,
            "version_minor2": self.version.minor2,
            "version_addl": self.version.addl,
            "raw_unparsed_version": self.raw_unparsed_version,
        }


@dataclass(frozen=True)
class VersionChangeNotice:
    """
    Alert raised when interesting software changes version on a host.
    """
    connection: Optional[Connection]
    msg: str
    sub: str
    category: SoftwareCategory
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    note: str = SOFTWARE_VERSION_CHANGE
