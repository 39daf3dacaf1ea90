"""
storage.py

Append-only software log and notice channel backed by SQLite.
"""

import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from banner.observation import Observation, VersionChangeNotice
from utils import app_logger, config

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


class SoftwareSink(ABC):
    """
    Where the registry sends accepted observations and version-change notices.
    Records are only ever appended.
    """

    @abstractmethod
    def write_observation(self, observation: Observation) -> None:
        """Append one observation to the software log."""

    @abstractmethod
    def raise_notice(self, notice: VersionChangeNotice) -> None:
        """Deliver a version-change notice."""


class StorageEngine(SoftwareSink):
    """
    SQLite-backed software log and notice store.
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        if db_path is None:
            db_path = config.get("paths.database", "software.db")
        
        self.db_path = Path(db_path)
        self.logger = app_logger
        self._initialize_database()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=10)

    def _initialize_database(self) -> None:
        """Create database and tables if they do not exist."""
        try:
            if not SCHEMA_PATH.exists():
                raise FileNotFoundError("Database schema file not found")

            with self._connect() as conn:
                conn.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
                
            self.logger.info(f"Software log initialized at {self.db_path}")
        
        except sqlite3.Error as e:
            self.logger.error(f"Database initialization failed: {e}")
            raise

    def write_observation(self, observation: Observation) -> None:
        record = observation.to_record()
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO software (
                        ts, host, host_port, software_category, name,
                        version_major, version_minor, version_minor2,
                        version_addl, raw_unparsed_version
                    )
                    VALUES (
                        :ts, :host, :host_port, :software_category, :name,
                        :version_major, :version_minor, :version_minor2,
                        :version_addl, :raw_unparsed_version
                    )
                    """,
                    record,
                )
            self.logger.debug(f"Logged software {record['name']!r} for {record['host']}")
        
        except (sqlite3.Error, OverflowError) as e:
            self.logger.error(f"Failed to write software record: {e}")
            raise

    def raise_notice(self, notice: VersionChangeNotice) -> None:
        conn_info = notice.connection
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO notices (
                        ts, note, uid, orig_h, orig_p, resp_h, resp_p,
                        msg, sub, category
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        notice.ts.isoformat(),
                        notice.note,
                        conn_info.uid if conn_info else None,
                        str(conn_info.orig_h) if conn_info else None,
                        conn_info.orig_p if conn_info else None,
                        str(conn_info.resp_h) if conn_info else None,
                        conn_info.resp_p if conn_info else None,
                        notice.msg,
                        notice.sub,
                        notice.category.value,
                    ),
                )
            self.logger.warning(f"{notice.note}: {notice.msg}")
        
        except sqlite3.Error as e:
            self.logger.error(f"Failed to store notice: {e}")
            raise

    def get_software_log(self, host: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return logged software records in insertion order, optionally for one host."""
        try:
            with self._connect() as conn:
                conn.row_factory = sqlite3.Row
                cursor = conn.cursor()
                
                if host is None:
                    cursor.execute("SELECT * FROM software ORDER BY id")
                else:
                    cursor.execute(
                        "SELECT * FROM software WHERE host = ? ORDER BY id",
                        (str(host),),
                    )
                
                return [dict(row) for row in cursor.fetchall()]
        
        except sqlite3.Error as e:
            self.logger.error(f"Failed to read software log: {e}")
            return []

    def get_notices(self) -> List[Dict[str, Any]]:
        """Return stored notices in insertion order."""
        try:
            with self._connect() as conn:
                conn.row_factory = sqlite3.Row
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM notices ORDER BY id")
                return [dict(row) for row in cursor.fetchall()]
        
        except sqlite3.Error as e:
            self.logger.error(f"Failed to read notices: {e}")
            return []
