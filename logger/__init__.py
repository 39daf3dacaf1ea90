"""
logger package

Durable software log and version-change notice storage.
"""

from logger.storage import SoftwareSink, StorageEngine

__all__ = ["SoftwareSink", "StorageEngine"]
