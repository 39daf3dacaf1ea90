"""
version_parser.py

Best-effort parser turning raw software banners into observations.
"""

import re
from typing import List

from banner.observation import Observation, StructuredVersion
from utils import app_logger

# Candidate version-number blobs: runs of two or more digits/separators.
# A run starts at a digit so a leading separator stays with the name.
VERSION_RUN = re.compile(r"[0-9][0-9\-._]+")

# Separators between the parts of a version; at most 4 parts are produced.
VERSION_SEPARATOR = re.compile(r"[\-._\s]")

MAX_VERSION_PARTS = 4

# Largest value an INTEGER column of the software log can hold.
MAX_COMPONENT = 2 ** 63 - 1


class BannerParser:
    """
    Splits a banner such as ``Apache/2.4.10-beta1`` into a software name
    and a structured version. Never raises: banners without a version
    number produce an observation with an empty name and a zero version.
    """

    def __init__(self):
        self.logger = app_logger

    def parse(self, raw: str) -> Observation:
        """
        Parse a raw banner.

        Args:
            raw: Unmodified banner text as seen on the wire.

        Returns:
            Observation with ``host`` unset and ``raw_unparsed_version``
            set to ``raw``.
        """
        raw = raw if raw is not None else ""
        match = VERSION_RUN.search(raw)

        if match is None:
            self.logger.debug(f"No version number found in banner: {raw!r}")
            return Observation.create(raw_unparsed_version=raw)

        # Name plus exactly one separator character precedes the first run.
        name = raw[:match.start()][:-1]
        version = self._parse_version(raw[match.start():], raw)

        return Observation.create(
            name=name,
            version=version,
            raw_unparsed_version=raw,
        )

    def _parse_version(self, text: str, raw: str) -> StructuredVersion:
        parts: List[str] = VERSION_SEPARATOR.split(text, maxsplit=MAX_VERSION_PARTS - 1)

        numbers = [self._to_number(part, raw) for part in parts[:3]]
        numbers += [0] * (3 - len(numbers))
        addl = parts[3] if len(parts) > 3 else ""

        return StructuredVersion(
            major=numbers[0],
            minor=numbers[1],
            minor2=numbers[2],
            addl=addl,
        )

    def _to_number(self, part: str, raw: str) -> int:
        """Non-numeric or out-of-range components count as absent (0) rather than failing the banner."""
        try:
            value = int(part)
        except ValueError:
            if part:
                self.logger.debug(f"Non-numeric version component {part!r} in {raw!r}, using 0")
            return 0

        if value > MAX_COMPONENT:
            self.logger.debug(f"Version component {part!r} in {raw!r} is out of range, using 0")
            return 0
        return value


_default_parser = BannerParser()


def parse_banner(raw: str) -> Observation:
    """Parse ``raw`` with the shared parser."""
    return _default_parser.parse(raw)
