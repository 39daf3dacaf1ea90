"""
analyzer package

Version ordering and change classification.
"""

from analyzer.compare import VersionOrder, compare_versions
from analyzer.diff import ChangeDetector, Verdict, DEFAULT_INTERESTING

__all__ = [
    "VersionOrder",
    "compare_versions",
    "ChangeDetector",
    "Verdict",
    "DEFAULT_INTERESTING",
]
