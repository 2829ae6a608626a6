"""
PostgreSQL notification adapter - Implements NotificationSink protocol.

Notifications land in the `notifications` table as unread rows; the
presentation layer reads them and flips is_read.
"""

import logging
from typing import Any

import psycopg
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.ports import NotificationType

logger = logging.getLogger(__name__)


class PostgresNotificationSink:
    """
    Implements NotificationSink protocol via psycopg3.

    Delivery is best-effort for the callers, so database errors are logged
    and reported as False instead of raised.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def notify(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        sql = """
            INSERT INTO notifications (user_id, type, title, message, link, metadata, is_read)
            VALUES (%s, %s, %s, %s, %s, %s, FALSE)
        """
        params = (
            user_id,
            type.value,
            title,
            message,
            link,
            Jsonb(metadata) if metadata is not None else None,
        )
        try:
            with self._pool.connection() as conn:
                conn.execute(sql, params)
                conn.commit()
        except psycopg.Error as e:
            logger.error(f"Failed to store {type.value} notification for user {user_id}: {e}")
            return False
        return True
