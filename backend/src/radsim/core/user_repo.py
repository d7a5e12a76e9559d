from __future__ import annotations
from datetime import datetime
from typing import Optional, Dict, Any

from radsim.core.rows import fetchone_dict, row_id

USER_COLUMNS = "id::text AS id, email, password_hash, role, is_active, created_at"


class UserRepo:
    # ---------------- USERS ----------------
    @staticmethod
    def get_user_by_email(cur, email: str) -> Optional[Dict[str, Any]]:
        cur.execute(
            f"SELECT {USER_COLUMNS} FROM users WHERE lower(email) = lower(%s) LIMIT 1",
            (email.strip(),),
        )
        return fetchone_dict(cur)

    @staticmethod
    def get_user_by_id(cur, user_id: str) -> Optional[Dict[str, Any]]:
        cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s::uuid", (user_id,))
        return fetchone_dict(cur)

    @staticmethod
    def insert_user(cur, *, email: str, password_hash: str, role: str = "user") -> Dict[str, Any]:
        cur.execute(
            f"""
            INSERT INTO users (email, password_hash, role)
            VALUES (%s, %s, %s)
            RETURNING {USER_COLUMNS}
            """,
            (email.strip().lower(), password_hash, role),
        )
        return fetchone_dict(cur)

    @staticmethod
    def update_password(cur, user_id: str, password_hash: str) -> bool:
        cur.execute(
            "UPDATE users SET password_hash = %s WHERE id = %s::uuid",
            (password_hash, user_id),
        )
        return cur.rowcount > 0

    @staticmethod
    def update_role(cur, user_id: str, role: str) -> bool:
        cur.execute("UPDATE users SET role = %s WHERE id = %s::uuid", (role, user_id))
        return cur.rowcount > 0

    # ---------------- SESSIONS ----------------
    @staticmethod
    def add_session(cur, *, user_id: str, token_hash: str, expires_at: datetime) -> int:
        cur.execute(
            """
            INSERT INTO sessions (user_id, token_hash, expires_at)
            VALUES (%s::uuid, %s, %s)
            RETURNING id
            """,
            (user_id, token_hash, expires_at),
        )
        return int(row_id(cur.fetchone()))

    @staticmethod
    def get_active_session(cur, session_id: int) -> Optional[Dict[str, Any]]:
        cur.execute(
            """
            SELECT id, user_id::text AS user_id, token_hash, expires_at, created_at
            FROM sessions
            WHERE id = %s AND expires_at > NOW()
            """,
            (session_id,),
        )
        return fetchone_dict(cur)

    @staticmethod
    def get_session_by_token_hash(cur, token_hash: str) -> Optional[Dict[str, Any]]:
        cur.execute(
            """
            SELECT id, user_id::text AS user_id, expires_at
            FROM sessions
            WHERE token_hash = %s AND expires_at > NOW()
            """,
            (token_hash,),
        )
        return fetchone_dict(cur)

    @staticmethod
    def delete_session(cur, session_id: int) -> None:
        cur.execute("DELETE FROM sessions WHERE id = %s", (session_id,))

    @staticmethod
    def delete_all_sessions_for_user(cur, user_id: str) -> None:
        cur.execute("DELETE FROM sessions WHERE user_id = %s::uuid", (user_id,))

    # ---------------- PASSWORD RESETS ----------------
    @staticmethod
    def add_password_reset(cur, *, user_id: str, token_hash: str, expires_at: datetime) -> None:
        cur.execute(
            """
            INSERT INTO password_resets (user_id, token_hash, expires_at)
            VALUES (%s::uuid, %s, %s)
            """,
            (user_id, token_hash, expires_at),
        )

    @staticmethod
    def consume_password_reset(cur, token_hash: str) -> Optional[str]:
        """Marks a valid reset token used and returns its user id."""
        cur.execute(
            """
            UPDATE password_resets
            SET used_at = NOW()
            WHERE token_hash = %s AND used_at IS NULL AND expires_at > NOW()
            RETURNING user_id::text AS user_id
            """,
            (token_hash,),
        )
        row = fetchone_dict(cur)
        return row["user_id"] if row else None
