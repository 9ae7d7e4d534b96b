"""
Database service for read-only PostgreSQL access to Kindra records
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from kindra.config import settings

logger = logging.getLogger(__name__)


class DatabaseService:
    """Service for direct database access"""

    @property
    def is_configured(self) -> bool:
        return bool(settings.DATABASE_URL)

    @contextmanager
    def get_db_context(self):
        """Context manager for database connections that ensures closure"""
        conn = None
        try:
            conn = self.get_connection()
            yield conn
        finally:
            if conn:
                conn.close()

    def get_connection(self):
        """Get raw database connection (internal use)"""
        return psycopg2.connect(
            settings.DATABASE_URL,
            connect_timeout=5
        )

    def _fetch_all(self, query: str, params: tuple) -> List[Dict[str, Any]]:
        with self.get_db_context() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params)
                return [dict(row) for row in cursor.fetchall()]

    def get_moments(self, user_id: int, connection_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get a user's moments, oldest first"""
        try:
            if connection_id is not None:
                return self._fetch_all("""
                    SELECT id, connection_id, emoji, tags, is_intimate, created_at
                    FROM moments
                    WHERE user_id = %s AND connection_id = %s
                    ORDER BY created_at ASC;
                """, (user_id, connection_id))
            return self._fetch_all("""
                SELECT id, connection_id, emoji, tags, is_intimate, created_at
                FROM moments
                WHERE user_id = %s
                ORDER BY created_at ASC;
            """, (user_id,))
        except Exception as e:
            logger.error(f"❌ Error fetching moments for user {user_id}: {e}")
            raise

    def get_menstrual_cycles(self, user_id: int) -> List[Dict[str, Any]]:
        """Get all tracked cycles for a user, newest first"""
        try:
            return self._fetch_all("""
                SELECT id, connection_id, start_date, end_date
                FROM menstrual_cycles
                WHERE user_id = %s
                ORDER BY start_date DESC;
            """, (user_id,))
        except Exception as e:
            logger.error(f"❌ Error fetching menstrual cycles for user {user_id}: {e}")
            raise

    def get_connections(self, user_id: int) -> List[Dict[str, Any]]:
        """Get a user's active connections"""
        try:
            return self._fetch_all("""
                SELECT id, name, relationship_stage, zodiac_sign, love_language
                FROM connections
                WHERE user_id = %s AND COALESCE(is_archived, FALSE) = FALSE
                ORDER BY id ASC;
            """, (user_id,))
        except Exception as e:
            logger.error(f"❌ Error fetching connections for user {user_id}: {e}")
            raise

    def get_connection_record(self, user_id: int, connection_id: int) -> Optional[Dict[str, Any]]:
        """Get a single connection owned by the user"""
        try:
            rows = self._fetch_all("""
                SELECT id, name, relationship_stage, zodiac_sign, love_language
                FROM connections
                WHERE user_id = %s AND id = %s;
            """, (user_id, connection_id))
            return rows[0] if rows else None
        except Exception as e:
            logger.error(f"❌ Error fetching connection {connection_id}: {e}")
            raise


# Global instance
db_service = DatabaseService()
