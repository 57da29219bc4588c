"""
SQLite storage backend for alert event history.
"""

import sqlite3
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from pathlib import Path

from sysalert.alerts.storage.base_storage import BaseStorage, EventRecord

logger = logging.getLogger(__name__)


class SQLiteStorage(BaseStorage):
    """SQLite implementation of event history"""

    def __init__(self, config: Dict):
        """
        Initialize SQLite storage.

        Args:
            config: History configuration dict with 'sqlite_path' key
        """
        self.db_path = config.get('sqlite_path', './data/sysalert.db')
        self.retention_days = config.get('retention_days', 30)

        # Ensure directory exists
        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        # Initialize database
        self.conn = None
        self._init_db()

        logger.info(f"Initialized SQLite history at {self.db_path}")

    def _init_db(self):
        """Create database tables and indexes"""
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

        # Enable WAL mode for better concurrency
        self.conn.execute("PRAGMA journal_mode=WAL")

        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS alert_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                rule_name VARCHAR(255) NOT NULL,
                state VARCHAR(20) NOT NULL,
                severity VARCHAR(20),
                metric_name VARCHAR(255),
                metric_value REAL,
                threshold REAL,
                occurred_at TIMESTAMP NOT NULL,
                repeat INTEGER DEFAULT 0,
                deliveries TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Create indexes
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_events_rule_name ON alert_events(rule_name)"
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_events_occurred_at ON alert_events(occurred_at)"
        )

        self.conn.commit()

    def save_event(self, record: EventRecord) -> int:
        """Append an event"""
        try:
            data = record.to_dict()

            cursor = self.conn.execute("""
                INSERT INTO alert_events (
                    rule_name, state, severity, metric_name, metric_value,
                    threshold, occurred_at, repeat, deliveries
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                data['rule_name'],
                data['state'],
                data['severity'],
                data['metric_name'],
                data['metric_value'],
                data['threshold'],
                data['occurred_at'],
                data['repeat'],
                data['deliveries'],
            ))

            self.conn.commit()
            record.id = cursor.lastrowid
            logger.debug(f"Saved {record.state} event for {record.rule_name} (id {record.id})")
            return record.id

        except sqlite3.Error as e:
            logger.error(f"Failed to save event for {record.rule_name}: {e}")
            self.conn.rollback()
            raise

    def get_event(self, event_id: int) -> Optional[EventRecord]:
        """Retrieve event by ID"""
        try:
            cursor = self.conn.execute(
                "SELECT * FROM alert_events WHERE id = ?", (event_id,)
            )

            row = cursor.fetchone()
            if row:
                return EventRecord.from_dict(dict(row))
            return None

        except sqlite3.Error as e:
            logger.error(f"Failed to get event {event_id}: {e}")
            return None

    def get_events_by_rule(self, rule_name: str, limit: int = 100) -> List[EventRecord]:
        """Get recent events for a specific rule"""
        try:
            cursor = self.conn.execute("""
                SELECT * FROM alert_events
                WHERE rule_name = ?
                ORDER BY occurred_at DESC, id DESC
                LIMIT ?
            """, (rule_name, limit))

            return [EventRecord.from_dict(dict(row)) for row in cursor.fetchall()]

        except sqlite3.Error as e:
            logger.error(f"Failed to get events for rule {rule_name}: {e}")
            return []

    def get_recent_events(self, limit: int = 100) -> List[EventRecord]:
        """Get recent events across all rules"""
        try:
            cursor = self.conn.execute("""
                SELECT * FROM alert_events
                ORDER BY occurred_at DESC, id DESC
                LIMIT ?
            """, (limit,))

            return [EventRecord.from_dict(dict(row)) for row in cursor.fetchall()]

        except sqlite3.Error as e:
            logger.error(f"Failed to get recent events: {e}")
            return []

    def cleanup_old_events(self, days: int) -> int:
        """Delete events older than specified days"""
        try:
            cutoff_date = datetime.now() - timedelta(days=days)

            cursor = self.conn.execute(
                "DELETE FROM alert_events WHERE occurred_at < ?",
                (cutoff_date.isoformat(),)
            )

            deleted_count = cursor.rowcount
            self.conn.commit()

            if deleted_count > 0:
                logger.info(f"Cleaned up {deleted_count} old events (>{days} days)")

            return deleted_count

        except sqlite3.Error as e:
            logger.error(f"Failed to cleanup old events: {e}")
            self.conn.rollback()
            return 0

    def close(self) -> None:
        """Close database connection"""
        if self.conn:
            try:
                self.conn.close()
                logger.debug("Closed SQLite connection")
            except sqlite3.Error as e:
                logger.error(f"Error closing SQLite connection: {e}")
            self.conn = None
