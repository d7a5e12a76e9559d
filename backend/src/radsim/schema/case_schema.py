from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

CaseStatus = Literal["all", "completed", "incomplete"]

# columns that may be omitted from an update but never set to null
REQUIRED_CASE_FIELDS = ("title", "clinical_info", "summary_of_pathology", "expected_findings")


def _clean_lines(values: Optional[List[str]]) -> List[str]:
    """Trim entries and drop blank ones (form rows left empty)."""
    return [v.strip() for v in (values or []) if v and v.strip()]


class Case(BaseModel):
    """A training case as stored in the case table."""
    id: str
    title: str
    accession_number: str
    clinical_info: str
    expected_findings: List[str]
    additional_findings: List[str] = Field(default_factory=list)
    summary_of_pathology: str
    images: List[str] = Field(default_factory=list)
    survey_url: Optional[str] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def gradable_findings(self) -> List[str]:
        return _clean_lines(self.expected_findings)

    @property
    def is_gradable(self) -> bool:
        return bool(self.gradable_findings)


class CaseIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    accession_number: Optional[str] = Field(None, max_length=64)
    clinical_info: str = Field(..., min_length=1)
    expected_findings: List[str]
    additional_findings: List[str] = Field(default_factory=list)
    summary_of_pathology: str = Field(..., min_length=1)
    images: List[str] = Field(default_factory=list)
    survey_url: Optional[str] = None

    @field_validator("title", "clinical_info", "summary_of_pathology")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("expected_findings")
    @classmethod
    def _need_one_finding(cls, v: List[str]) -> List[str]:
        cleaned = _clean_lines(v)
        if not cleaned:
            raise ValueError("At least one expected finding is required")
        return cleaned

    @field_validator("additional_findings", "images")
    @classmethod
    def _strip_blank(cls, v: List[str]) -> List[str]:
        return _clean_lines(v)


class CaseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    clinical_info: Optional[str] = Field(None, min_length=1)
    expected_findings: Optional[List[str]] = None
    additional_findings: Optional[List[str]] = None
    summary_of_pathology: Optional[str] = Field(None, min_length=1)
    images: Optional[List[str]] = None
    survey_url: Optional[str] = None

    @field_validator("title", "clinical_info", "summary_of_pathology")
    @classmethod
    def _not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("field cannot be blank")
        return v

    @field_validator("expected_findings")
    @classmethod
    def _need_one_finding(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        cleaned = _clean_lines(v)
        if not cleaned:
            raise ValueError("At least one expected finding is required")
        return cleaned

    @field_validator("additional_findings", "images")
    @classmethod
    def _strip_blank(cls, v: Optional[List[str]]) -> List[str]:
        # an explicit null clears the list
        return _clean_lines(v)

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.model_dump(exclude_unset=True):
            raise ValueError("Nothing to update")
        nulled = [f for f in REQUIRED_CASE_FIELDS if f in self.model_fields_set and getattr(self, f) is None]
        if nulled:
            raise ValueError(f"Cannot clear required field(s): {', '.join(nulled)}")
        return self


class CaseSummaryOut(BaseModel):
    id: str
    title: str
    accession_number: str
    image_count: int
    completed: bool
    created_at: Optional[datetime] = None


class CaseListOut(BaseModel):
    items: List[CaseSummaryOut]
    status: CaseStatus
    limit: int
    offset: int


class CaseViewOut(BaseModel):
    """What a learner sees before the case is resolved."""
    id: str
    title: str
    accession_number: str
    clinical_info: str
    images: List[str]
    survey_url: Optional[str] = None
    completed: bool
    finding_count: int


class CaseCreatedOut(BaseModel):
    id: str


class CompletionIn(BaseModel):
    completed: bool


class NeighborsOut(BaseModel):
    previous_id: Optional[str] = None
    next_id: Optional[str] = None
