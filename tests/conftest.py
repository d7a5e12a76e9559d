import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from radsim.api.services.service_feedback.grader import CaseGrader
from radsim.api.services.service_training.case_engine import SessionRegistry
from radsim.core.case_store import CaseNotFound, generate_accession_number
from radsim.core.rate_limit import limiter
from radsim.main import app
from radsim.schema.auth import AuthUser
from radsim.schema.case_schema import Case
from radsim.utils.auth import (
    get_case_store,
    get_current_user,
    get_grader,
    get_session_registry,
)

LEARNER = AuthUser(id="11111111-1111-1111-1111-111111111111", email="learner@example.com", role="user")
ADMIN = AuthUser(id="22222222-2222-2222-2222-222222222222", email="admin@example.com", role="admin")


def make_case(**overrides) -> Case:
    fields: Dict[str, Any] = dict(
        id=str(uuid.uuid4()),
        title="Chest trauma",
        accession_number="AB12CD34EF",
        clinical_info="45M, fall from ladder, right chest pain.",
        expected_findings=["pneumothorax", "rib fracture"],
        additional_findings=["subcutaneous emphysema"],
        summary_of_pathology="Traumatic pneumothorax is often associated with rib fractures.",
        images=["https://img.example.com/1.png", "https://img.example.com/2.png"],
        survey_url="https://survey.example.com/case",
        created_at=datetime.now(timezone.utc),
    )
    fields.update(overrides)
    return Case(**fields)


class FakeCaseStore:
    """In-memory stand-in for CaseStore."""

    def __init__(self, cases: Optional[List[Case]] = None):
        self.cases: Dict[str, Case] = {c.id: c for c in (cases or [])}
        self.completed_calls: List[tuple] = []
        self.progress: Dict[tuple, Dict[str, Any]] = {}
        self.fail_completion = False
        self.fail_progress = False

    def list_cases(self, status="all", limit=100, offset=0):
        items = list(self.cases.values())
        if status == "completed":
            items = [c for c in items if c.completed]
        elif status == "incomplete":
            items = [c for c in items if not c.completed]
        return items[offset:offset + limit]

    def get_case(self, case_id):
        return self.cases.get(case_id)

    def create_case(self, fields):
        data = dict(fields)
        data["accession_number"] = data.get("accession_number") or generate_accession_number()
        case = Case(id=str(uuid.uuid4()), **data)
        self.cases[case.id] = case
        return case.id

    def update_case(self, case_id, fields):
        if case_id not in self.cases:
            raise CaseNotFound("Case not found")
        self.cases[case_id] = self.cases[case_id].model_copy(update=fields)

    def delete_case(self, case_id):
        if self.cases.pop(case_id, None) is None:
            raise CaseNotFound("Case not found")

    def set_completed(self, case_id, completed):
        if self.fail_completion:
            raise RuntimeError("database unavailable")
        if case_id not in self.cases:
            raise CaseNotFound("Case not found")
        self.completed_calls.append((case_id, completed))
        self.cases[case_id] = self.cases[case_id].model_copy(update={"completed": completed})

    def neighbors(self, case_id):
        ids = list(self.cases)
        if case_id not in ids:
            raise CaseNotFound("Case not found")
        pos = ids.index(case_id)
        return (ids[pos - 1] if pos > 0 else None, ids[pos + 1] if pos < len(ids) - 1 else None)

    def save_progress(self, *, user_id, case_id, first_attempt, second_attempt, score, completed):
        if self.fail_progress:
            raise RuntimeError("database unavailable")
        self.progress[(user_id, case_id)] = dict(
            first_attempt=first_attempt,
            second_attempt=second_attempt,
            score=score,
            completed=completed,
        )

    def get_progress(self, *, user_id, case_id):
        return self.progress.get((user_id, case_id))


class FakeTextGenerator:
    """Returns queued replies (or raises queued exceptions) and records prompts."""

    def __init__(self, *replies, configured: bool = True):
        self.replies = list(replies)
        self._configured = configured
        self.prompts: List[str] = []

    @property
    def configured(self) -> bool:
        return self._configured

    def generate(self, prompt: str, system_instruction: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def case() -> Case:
    return make_case()


@pytest.fixture
def store(case) -> FakeCaseStore:
    return FakeCaseStore([case])


@pytest.fixture
def generator() -> FakeTextGenerator:
    return FakeTextGenerator()


@pytest.fixture
def grader(generator) -> CaseGrader:
    return CaseGrader(generator)


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def current_user():
    """Mutable holder so a test can switch between learner and admin."""
    return {"user": LEARNER}


@pytest.fixture
def client(store, grader, registry, current_user):
    app.dependency_overrides[get_case_store] = lambda: store
    app.dependency_overrides[get_grader] = lambda: grader
    app.dependency_overrides[get_session_registry] = lambda: registry
    app.dependency_overrides[get_current_user] = lambda: current_user["user"]
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True
