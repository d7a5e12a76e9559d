from __future__ import annotations
import logging
import secrets
import string
from typing import Any, Dict, List, Optional

from radsim.core.case_repo import CaseRepo
from radsim.database.connection import Database
from radsim.schema.case_schema import Case, CaseStatus

logger = logging.getLogger(__name__)

_ACCESSION_ALPHABET = string.ascii_uppercase + string.digits


class CaseNotFound(ValueError):
    pass


def generate_accession_number(length: int = 10) -> str:
    return "".join(secrets.choice(_ACCESSION_ALPHABET) for _ in range(length))


def _status_filter(status: CaseStatus) -> Optional[bool]:
    if status == "completed":
        return True
    if status == "incomplete":
        return False
    return None


class CaseStore:
    """Case persistence over the PostgreSQL pool."""

    def __init__(self, db: Database):
        self.db = db

    def list_cases(self, status: CaseStatus = "all", limit: int = 100, offset: int = 0) -> List[Case]:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                rows = CaseRepo.list_cases(cur, completed=_status_filter(status), limit=limit, offset=offset)
        return [Case(**r) for r in rows]

    def get_case(self, case_id: str) -> Optional[Case]:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                row = CaseRepo.get_case(cur, case_id)
        return Case(**row) if row else None

    def create_case(self, fields: Dict[str, Any]) -> str:
        data = dict(fields)
        data["accession_number"] = data.get("accession_number") or generate_accession_number()
        data.setdefault("additional_findings", [])
        data.setdefault("images", [])
        data.setdefault("survey_url", None)
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                case_id = CaseRepo.insert_case(cur, data)
        logger.info("Case created id=%s accession=%s", case_id, data["accession_number"])
        return case_id

    def update_case(self, case_id: str, fields: Dict[str, Any]) -> None:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                found = CaseRepo.update_case(cur, case_id, fields)
        if not found:
            raise CaseNotFound("Case not found")

    def delete_case(self, case_id: str) -> None:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                found = CaseRepo.delete_case(cur, case_id)
        if not found:
            raise CaseNotFound("Case not found")
        logger.info("Case deleted id=%s", case_id)

    def set_completed(self, case_id: str, completed: bool) -> None:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                found = CaseRepo.set_completed(cur, case_id, completed)
        if not found:
            raise CaseNotFound("Case not found")

    def neighbors(self, case_id: str) -> tuple[Optional[str], Optional[str]]:
        """Previous and next case ids in dashboard order (newest first)."""
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                ids = CaseRepo.list_case_ids(cur)
        if case_id not in ids:
            raise CaseNotFound("Case not found")
        pos = ids.index(case_id)
        prev_id = ids[pos - 1] if pos > 0 else None
        next_id = ids[pos + 1] if pos < len(ids) - 1 else None
        return prev_id, next_id

    def save_progress(
        self,
        *,
        user_id: str,
        case_id: str,
        first_attempt: Optional[str],
        second_attempt: Optional[str],
        score: Optional[int],
        completed: bool,
    ) -> None:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                CaseRepo.upsert_progress(
                    cur,
                    user_id=user_id,
                    case_id=case_id,
                    first_attempt=first_attempt,
                    second_attempt=second_attempt,
                    score=score,
                    completed=completed,
                )

    def get_progress(self, *, user_id: str, case_id: str) -> Optional[Dict[str, Any]]:
        with self.db.connection() as conn:
            with conn.cursor() as cur:
                return CaseRepo.get_progress(cur, user_id=user_id, case_id=case_id)
