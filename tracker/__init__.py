"""
tracker package

Host scope filtering, the per-host software registry and the public
``found`` entry point.
"""

from tracker.scope import HostScope, ScopePolicy
from tracker.registry import SoftwareRegistry
from tracker.dispatcher import SoftwareTracker

__all__ = ["HostScope", "ScopePolicy", "SoftwareRegistry", "SoftwareTracker"]
