"""
formatting.py

Display helpers for log messages and alert text.
"""

from typing import Union

from banner.observation import Connection, IPAddress, Observation, format_version, to_address

__all__ = ["format_version", "format_observation", "format_endpoint"]


def format_observation(observation: Observation) -> str:
    return f"{observation.name} {format_version(observation.version)}"


def format_endpoint(host: Union[str, IPAddress], connection: Connection) -> str:
    """Label ``host`` as the client or server side of ``connection``."""
    address = to_address(host)
    role = "client" if address == connection.orig_h else "server"
    return f"{address} {role}"
