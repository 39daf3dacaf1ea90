"""
banner package

Software observation records, banner parsing and display formatting.
"""

from banner.observation import (
    Connection,
    Observation,
    SoftwareCategory,
    StructuredVersion,
    VersionChangeNotice,
    SOFTWARE_VERSION_CHANGE,
    UNSPECIFIED_HOST,
)
from banner.version_parser import BannerParser, parse_banner
from banner.formatting import format_endpoint, format_observation, format_version

__all__ = [
    "Connection",
    "Observation",
    "SoftwareCategory",
    "StructuredVersion",
    "VersionChangeNotice",
    "SOFTWARE_VERSION_CHANGE",
    "UNSPECIFIED_HOST",
    "BannerParser",
    "parse_banner",
    "format_endpoint",
    "format_observation",
    "format_version",
]
