"""
Database Access Module
=======================

All database queries for the Mind Map Portal API.

The store exposes narrow, purpose-specific operations only. Every
operation opens its own connection, runs parameterized SQL and closes
the connection again; writes are single statements.

SECURITY: mind map queries that return or change private data take the
caller's account id and filter on it in SQL, so a row the caller may
not see is never loaded.
"""

import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .entities import AccountStatus, ApplicationStatus, Language, Role
from .schema import ALL_STATEMENTS, TABLE_NAMES


class DuplicateRecordError(Exception):
    """A UNIQUE constraint (email/username) rejected the write."""


class UnknownOwnerError(Exception):
    """The owning account referenced by a write does not exist."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _new_id() -> str:
    return str(uuid.uuid4())


def _raise_integrity(exc: sqlite3.IntegrityError):
    message = str(exc)
    if "FOREIGN KEY" in message.upper():
        raise UnknownOwnerError(message) from exc
    raise DuplicateRecordError(message) from exc


def _mindmap_from_row(row) -> Dict[str, Any]:
    mindmap = dict(row)
    mindmap["is_public"] = bool(mindmap["is_public"])
    return mindmap


USER_COLUMNS = "id, email, username, role, status, language, created_at, updated_at"
APPLICATION_COLUMNS = "id, email, username, reason, status, created_at, updated_at"
MINDMAP_SUMMARY_COLUMNS = "id, user_id, title, description, is_public, created_at, updated_at"
MINDMAP_COLUMNS = "id, user_id, title, description, content, is_public, created_at, updated_at"


class MindmapStore:
    """sqlite3-backed persistence for accounts, applications and mind maps."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection (foreign keys on, rows as sqlite3.Row)"""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    # ============================================================
    # Schema / Diagnostics
    # ============================================================

    def initialize_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_connection()
        try:
            for statement in ALL_STATEMENTS:
                conn.execute(statement)
            conn.commit()
        finally:
            conn.close()

    def health_check(self) -> Dict[str, bool]:
        """Check connectivity and whether all tables exist.

        Connection failures propagate. The table check is best effort and
        degrades to ``tables_initialized=False``.
        """
        conn = self.get_connection()
        try:
            conn.execute("SELECT 1").fetchone()

            tables_initialized = False
            try:
                placeholders = ", ".join("?" for _ in TABLE_NAMES)
                rows = conn.execute(
                    f"SELECT name FROM sqlite_master WHERE type = 'table' AND name IN ({placeholders})",
                    TABLE_NAMES,
                ).fetchall()
                tables_initialized = len(rows) == len(TABLE_NAMES)
            except sqlite3.Error:
                tables_initialized = False

            return {"connected": True, "tables_initialized": tables_initialized}
        finally:
            conn.close()

    # ============================================================
    # Accounts
    # ============================================================

    def find_user_by_email(self, email: str) -> Optional[Dict]:
        """Account row including password_hash (login only)"""
        conn = self.get_connection()
        try:
            row = conn.execute(f"""
                SELECT {USER_COLUMNS}, password_hash
                FROM users
                WHERE email = ?
            """, (email,)).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def find_user_by_email_or_username(self, email: str, username: str) -> Optional[Dict]:
        conn = self.get_connection()
        try:
            row = conn.execute(f"""
                SELECT {USER_COLUMNS}
                FROM users
                WHERE email = ? OR username = ?
                LIMIT 1
            """, (email, username)).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def get_user_by_id(self, user_id: str) -> Optional[Dict]:
        conn = self.get_connection()
        try:
            row = conn.execute(f"""
                SELECT {USER_COLUMNS}
                FROM users
                WHERE id = ?
            """, (user_id,)).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def insert_user(
        self,
        email: str,
        username: str,
        password_hash: str,
        role: Role = Role.MEMBER,
        status: AccountStatus = AccountStatus.APPROVED,
        language: Language = Language.ZH,
    ) -> Dict:
        """Create an account. Raises DuplicateRecordError on email/username clash."""
        user_id = _new_id()
        now = _now()
        conn = self.get_connection()
        try:
            try:
                conn.execute("""
                    INSERT INTO users (id, email, username, password_hash, role,
                                       status, language, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (user_id, email, username, password_hash, Role(role).value,
                      AccountStatus(status).value, Language(language).value, now, now))
                conn.commit()
            except sqlite3.IntegrityError as e:
                _raise_integrity(e)
        finally:
            conn.close()
        return self.get_user_by_id(user_id)

    def list_users(self) -> List[Dict]:
        """All accounts, newest first"""
        conn = self.get_connection()
        try:
            rows = conn.execute(f"""
                SELECT {USER_COLUMNS}
                FROM users
                ORDER BY created_at DESC
            """).fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    def update_user(
        self,
        user_id: str,
        role: Optional[Role] = None,
        status: Optional[AccountStatus] = None,
        language: Optional[Language] = None,
    ) -> Optional[Dict]:
        """Update any subset of role/status/language. Returns None if the id is unknown."""
        updates = []
        values: List[Any] = []
        if role is not None:
            updates.append("role = ?")
            values.append(Role(role).value)
        if status is not None:
            updates.append("status = ?")
            values.append(AccountStatus(status).value)
        if language is not None:
            updates.append("language = ?")
            values.append(Language(language).value)
        if not updates:
            raise ValueError("update_user needs at least one field")

        updates.append("updated_at = ?")
        values.append(_now())
        values.append(user_id)

        conn = self.get_connection()
        try:
            cursor = conn.execute(
                f"UPDATE users SET {', '.join(updates)} WHERE id = ?",
                values,
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
        finally:
            conn.close()
        return self.get_user_by_id(user_id)

    def delete_user(self, user_id: str) -> bool:
        """Delete an account; owned mind maps go with it (ON DELETE CASCADE)."""
        conn = self.get_connection()
        try:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def count_users(self) -> int:
        conn = self.get_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        finally:
            conn.close()

    # ============================================================
    # Registration Applications
    # ============================================================

    def list_pending_applications(self) -> List[Dict]:
        """Pending applications, newest first"""
        conn = self.get_connection()
        try:
            rows = conn.execute(f"""
                SELECT {APPLICATION_COLUMNS}
                FROM user_applications
                WHERE status = ?
                ORDER BY created_at DESC
            """, (ApplicationStatus.PENDING.value,)).fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    def find_application_by_email_or_username(self, email: str, username: str) -> Optional[Dict]:
        conn = self.get_connection()
        try:
            row = conn.execute(f"""
                SELECT {APPLICATION_COLUMNS}
                FROM user_applications
                WHERE email = ? OR username = ?
                ORDER BY CASE status WHEN 'pending' THEN 0 ELSE 1 END
                LIMIT 1
            """, (email, username)).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def get_application(self, application_id: str) -> Optional[Dict]:
        """Application row including password_hash (needed for approval)"""
        conn = self.get_connection()
        try:
            row = conn.execute(f"""
                SELECT {APPLICATION_COLUMNS}, password_hash
                FROM user_applications
                WHERE id = ?
            """, (application_id,)).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def insert_application(
        self,
        email: str,
        username: str,
        password_hash: str,
        reason: Optional[str] = None,
    ) -> Dict:
        """Create a pending application. Raises DuplicateRecordError on clash."""
        application_id = _new_id()
        now = _now()
        conn = self.get_connection()
        try:
            try:
                conn.execute("""
                    INSERT INTO user_applications (id, email, username, password_hash,
                                                   reason, status, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (application_id, email, username, password_hash, reason,
                      ApplicationStatus.PENDING.value, now, now))
                conn.commit()
            except sqlite3.IntegrityError as e:
                _raise_integrity(e)
        finally:
            conn.close()

        application = self.get_application(application_id)
        application.pop("password_hash", None)
        return application

    def _mark_application(self, application_id: str, status: ApplicationStatus) -> bool:
        # Only pending rows move; terminal rows are immutable.
        conn = self.get_connection()
        try:
            cursor = conn.execute("""
                UPDATE user_applications
                SET status = ?, updated_at = ?
                WHERE id = ? AND status = ?
            """, (status.value, _now(), application_id, ApplicationStatus.PENDING.value))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def mark_application_approved(self, application_id: str) -> bool:
        return self._mark_application(application_id, ApplicationStatus.APPROVED)

    def mark_application_rejected(self, application_id: str) -> bool:
        return self._mark_application(application_id, ApplicationStatus.REJECTED)

    # ============================================================
    # Mind Maps
    # ============================================================

    def list_mindmaps_visible_to(self, caller_id: Optional[str]) -> List[Dict]:
        """Public maps plus the caller's own, most recently updated first.

        Content is not included; listings only need the summary.
        """
        conn = self.get_connection()
        try:
            if caller_id:
                rows = conn.execute(f"""
                    SELECT {MINDMAP_SUMMARY_COLUMNS}
                    FROM mind_maps
                    WHERE is_public = 1 OR user_id = ?
                    ORDER BY updated_at DESC, created_at DESC
                """, (caller_id,)).fetchall()
            else:
                rows = conn.execute(f"""
                    SELECT {MINDMAP_SUMMARY_COLUMNS}
                    FROM mind_maps
                    WHERE is_public = 1
                    ORDER BY updated_at DESC, created_at DESC
                """).fetchall()
            return [_mindmap_from_row(row) for row in rows]
        finally:
            conn.close()

    def find_mindmap_visible_to(self, mindmap_id: str, caller_id: Optional[str]) -> Optional[Dict]:
        """A single map if it is public, ownerless, or owned by the caller."""
        conn = self.get_connection()
        try:
            row = conn.execute(f"""
                SELECT {MINDMAP_COLUMNS}
                FROM mind_maps
                WHERE id = ?
                  AND (is_public = 1 OR user_id IS NULL OR user_id = ?)
            """, (mindmap_id, caller_id)).fetchone()
            return _mindmap_from_row(row) if row else None
        finally:
            conn.close()

    def _get_mindmap(self, conn, mindmap_id: str) -> Optional[Dict]:
        row = conn.execute(f"""
            SELECT {MINDMAP_COLUMNS}
            FROM mind_maps
            WHERE id = ?
        """, (mindmap_id,)).fetchone()
        return _mindmap_from_row(row) if row else None

    def insert_mindmap(
        self,
        owner_id: Optional[str],
        title: str,
        content: str,
        description: Optional[str] = None,
        is_public: bool = True,
    ) -> Dict:
        """Create a map. Raises UnknownOwnerError if owner_id has no account."""
        mindmap_id = _new_id()
        now = _now()
        conn = self.get_connection()
        try:
            try:
                conn.execute("""
                    INSERT INTO mind_maps (id, user_id, title, description, content,
                                           is_public, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (mindmap_id, owner_id, title, description, content,
                      1 if is_public else 0, now, now))
                conn.commit()
            except sqlite3.IntegrityError as e:
                _raise_integrity(e)
            return self._get_mindmap(conn, mindmap_id)
        finally:
            conn.close()

    def update_mindmap_for_owner(
        self,
        mindmap_id: str,
        owner_id: str,
        title: str,
        content: str,
        description: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> Optional[Dict]:
        """Update a map owned by owner_id (or an ownerless one).

        Returns None when no row matches, which covers both "absent" and
        "owned by someone else".
        """
        updates = ["title = ?", "description = ?", "content = ?"]
        values: List[Any] = [title, description, content]
        if is_public is not None:
            updates.append("is_public = ?")
            values.append(1 if is_public else 0)
        updates.append("updated_at = ?")
        values.extend([_now(), mindmap_id, owner_id])

        conn = self.get_connection()
        try:
            cursor = conn.execute(f"""
                UPDATE mind_maps
                SET {', '.join(updates)}
                WHERE id = ? AND (user_id = ? OR user_id IS NULL)
            """, values)
            conn.commit()
            if cursor.rowcount == 0:
                return None
            return self._get_mindmap(conn, mindmap_id)
        finally:
            conn.close()

    def delete_mindmap_for_owner(self, mindmap_id: str, owner_id: str) -> bool:
        conn = self.get_connection()
        try:
            cursor = conn.execute("""
                DELETE FROM mind_maps
                WHERE id = ? AND (user_id = ? OR user_id IS NULL)
            """, (mindmap_id, owner_id))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
