"""
diff.py

Decides whether a new software sighting changes what is known about a host.
"""

from enum import Enum
from typing import Iterable, Optional, Set

from analyzer.compare import VersionOrder, compare_versions
from banner.observation import Observation

DEFAULT_INTERESTING = frozenset({"SSH"})


class Verdict(Enum):
    """What the registry should do with a sighting."""
    FIRST_SIGHTING = "first_sighting"
    VERSION_CHANGE = "version_change"
    FORCED = "forced"
    SUPPRESSED = "suppressed"


class ChangeDetector:
    """
    Compares a new observation against the last known one for the same
    (host, name) and classifies it.
    """

    def __init__(self, interesting: Optional[Iterable[str]] = None) -> None:
        self.interesting: Set[str] = set(
            DEFAULT_INTERESTING if interesting is None else interesting
        )

    def is_interesting(self, name: str) -> bool:
        return name in self.interesting

    def classify(self, old: Optional[Observation], new: Observation) -> Verdict:
        """
        Classify ``new`` given the stored entry ``old``.

        Only software in the interesting set produces VERSION_CHANGE;
        changes to anything else are suppressed like repeat sightings.
        """
        if old is None:
            return Verdict.FIRST_SIGHTING

        order = compare_versions(old.version, new.version)
        if self.is_interesting(new.name) and order != VersionOrder.EQUAL:
            return Verdict.VERSION_CHANGE

        if new.force_log:
            return Verdict.FORCED

        return Verdict.SUPPRESSED
