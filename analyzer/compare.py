"""
compare.py

Total ordering over structured software versions.
"""

from enum import IntEnum

from banner.observation import StructuredVersion


class VersionOrder(IntEnum):
    """Result of comparing two versions, usable like a cmp() integer."""
    LESS = -1
    EQUAL = 0
    GREATER = 1


def compare_versions(v1: StructuredVersion, v2: StructuredVersion) -> VersionOrder:
    """
    Compare (major, minor, minor2, addl) lexicographically.

    ``addl`` is compared as plain text, so "rc10" sorts before "rc2".
    """
    left = (v1.major, v1.minor, v1.minor2, v1.addl)
    right = (v2.major, v2.minor, v2.minor2, v2.addl)

    if left < right:
        return VersionOrder.LESS
    if left > right:
        return VersionOrder.GREATER
    return VersionOrder.EQUAL
