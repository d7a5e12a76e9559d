from __future__ import annotations
from typing import Optional, List, Dict, Any

from radsim.core.rows import fetchall_dict, fetchone_dict, row_id

CASE_COLUMNS = (
    "id::text AS id, title, accession_number, clinical_info, expected_findings, "
    "additional_findings, summary_of_pathology, images, survey_url, completed, "
    "completed_at, created_at, updated_at"
)

# Columns an admin may write through create/update.
WRITABLE_FIELDS = (
    "title",
    "accession_number",
    "clinical_info",
    "expected_findings",
    "additional_findings",
    "summary_of_pathology",
    "images",
    "survey_url",
)


class CaseRepo:
    # ---------------- CASES ----------------
    @staticmethod
    def list_cases(cur, *, completed: Optional[bool] = None, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        if completed is None:
            cur.execute(
                f"""
                SELECT {CASE_COLUMNS} FROM cases
                ORDER BY created_at DESC, id
                LIMIT %s OFFSET %s
                """,
                (limit, offset),
            )
        else:
            cur.execute(
                f"""
                SELECT {CASE_COLUMNS} FROM cases
                WHERE completed = %s
                ORDER BY created_at DESC, id
                LIMIT %s OFFSET %s
                """,
                (completed, limit, offset),
            )
        return fetchall_dict(cur)

    @staticmethod
    def get_case(cur, case_id: str) -> Optional[Dict[str, Any]]:
        cur.execute(f"SELECT {CASE_COLUMNS} FROM cases WHERE id = %s::uuid", (case_id,))
        return fetchone_dict(cur)

    @staticmethod
    def insert_case(cur, data: Dict[str, Any]) -> str:
        cur.execute(
            """
            INSERT INTO cases (
                title, accession_number, clinical_info, expected_findings,
                additional_findings, summary_of_pathology, images, survey_url
            )
            VALUES (%(title)s, %(accession_number)s, %(clinical_info)s, %(expected_findings)s,
                    %(additional_findings)s, %(summary_of_pathology)s, %(images)s, %(survey_url)s)
            RETURNING id::text AS id
            """,
            data,
        )
        return row_id(cur.fetchone())

    @staticmethod
    def update_case(cur, case_id: str, fields: Dict[str, Any]) -> bool:
        cols = [k for k in WRITABLE_FIELDS if k in fields]
        if not cols:
            return False
        assignments = ", ".join(f"{c} = %({c})s" for c in cols)
        params = {c: fields[c] for c in cols}
        params["case_id"] = case_id
        cur.execute(
            f"""
            UPDATE cases
            SET {assignments}, updated_at = NOW()
            WHERE id = %(case_id)s::uuid
            """,
            params,
        )
        return cur.rowcount > 0

    @staticmethod
    def delete_case(cur, case_id: str) -> bool:
        cur.execute("DELETE FROM cases WHERE id = %s::uuid", (case_id,))
        return cur.rowcount > 0

    @staticmethod
    def set_completed(cur, case_id: str, completed: bool) -> bool:
        cur.execute(
            """
            UPDATE cases
            SET completed = %s,
                completed_at = CASE WHEN %s THEN NOW() ELSE NULL END,
                updated_at = NOW()
            WHERE id = %s::uuid
            """,
            (completed, completed, case_id),
        )
        return cur.rowcount > 0

    @staticmethod
    def list_case_ids(cur) -> List[str]:
        cur.execute("SELECT id::text AS id FROM cases ORDER BY created_at DESC, id")
        return [r["id"] for r in fetchall_dict(cur)]

    # ---------------- PROGRESS ----------------
    @staticmethod
    def upsert_progress(
        cur,
        *,
        user_id: str,
        case_id: str,
        first_attempt: Optional[str],
        second_attempt: Optional[str],
        score: Optional[int],
        completed: bool,
    ) -> None:
        # keeps the best score seen for this user and case
        cur.execute(
            """
            INSERT INTO user_progress
              (user_id, case_id, first_attempt, second_attempt, score, completed)
            VALUES (%s::uuid, %s::uuid, %s, %s, %s, %s)
            ON CONFLICT (user_id, case_id)
            DO UPDATE SET
              first_attempt  = EXCLUDED.first_attempt,
              second_attempt = EXCLUDED.second_attempt,
              score          = GREATEST(COALESCE(user_progress.score, 0), COALESCE(EXCLUDED.score, 0)),
              completed      = user_progress.completed OR EXCLUDED.completed,
              updated_at     = NOW()
            """,
            (user_id, case_id, first_attempt, second_attempt, score, completed),
        )

    @staticmethod
    def get_progress(cur, *, user_id: str, case_id: str) -> Optional[Dict[str, Any]]:
        cur.execute(
            """
            SELECT user_id::text AS user_id, case_id::text AS case_id, first_attempt,
                   second_attempt, score, completed, updated_at
            FROM user_progress
            WHERE user_id = %s::uuid AND case_id = %s::uuid
            """,
            (user_id, case_id),
        )
        return fetchone_dict(cur)
