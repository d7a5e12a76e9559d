from __future__ import annotations

import logging
import re
from typing import Dict, Optional, Union

from radsim.api.services.service_feedback.evaluation import (
    EvaluationResult,
    Fallback,
    FallbackContext,
    Parsed,
)
from radsim.utils.case_scoring import MAX_SCORE, compute_score
from radsim.utils.finding_match import match_findings

logger = logging.getLogger(__name__)

# Must stay in step with prompt_builder.PROMPT_FORMAT_VERSION.
LABELS = ("FEEDBACK", "SCORE", "CLUE_GIVEN", "SHOW_EXPECTED")

_ANY_LABEL = "|".join(LABELS)
_FIELD_PATTERNS = {
    label: re.compile(
        rf"\b{label}\s*\**\s*:\s*\**(.*?)(?=\**\s*\b(?:{_ANY_LABEL})\s*\**\s*:|\Z)",
        re.IGNORECASE | re.DOTALL,
    )
    for label in LABELS
}
_INT = re.compile(r"-?\d+")
_BOOL = re.compile(r"\b(true|false|yes|no)\b", re.IGNORECASE)


def _field(raw: str, label: str) -> Optional[str]:
    m = _FIELD_PATTERNS[label].search(raw)
    if not m:
        return None
    return m.group(1).strip().strip("*").strip()


def _to_bool(value: Optional[str]) -> Optional[bool]:
    if not value:
        return None
    m = _BOOL.search(value)
    if not m:
        return None
    return m.group(1).lower() in ("true", "yes")


def _to_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    m = _INT.search(value)
    return int(m.group(0)) if m else None


def extract_fields(raw: Optional[str]) -> Union[Parsed, Fallback]:
    """
    Reads the FEEDBACK / SCORE / CLUE_GIVEN / SHOW_EXPECTED trailer.
    Returns Parsed when a numeric score was found, Fallback otherwise.
    """
    if not raw or not raw.strip():
        return Fallback(reason="empty response")

    values: Dict[str, Optional[str]] = {label: _field(raw, label) for label in LABELS}
    feedback = values["FEEDBACK"] or ""
    clue_given = _to_bool(values["CLUE_GIVEN"])
    show_expected = _to_bool(values["SHOW_EXPECTED"])

    if values["SCORE"] is None:
        return Fallback("missing SCORE", feedback, clue_given, show_expected)

    score = _to_int(values["SCORE"])
    if score is None:
        return Fallback("unparseable SCORE", feedback, clue_given, show_expected)

    return Parsed(feedback, score, clue_given, show_expected)


def fallback_feedback(found: int, total: int, attempt_number: int) -> str:
    if found == total:
        return f"You identified all {total} expected findings. Well done."
    if attempt_number == 1:
        return (
            f"You identified {found} of {total} expected findings. "
            "Look at the images again systematically: are there other regions "
            "or structures you have not yet commented on?"
        )
    return (
        f"You identified {found} of {total} expected findings across both attempts. "
        "Compare your impression with the expected findings and teaching points below."
    )


def parse_response(raw: Optional[str], context: FallbackContext) -> EvaluationResult:
    """
    Turns the grading service reply into an EvaluationResult. A reply
    without a usable SCORE is scored deterministically from the learner's
    text. show_expected is only ever true at the round maximum.
    """
    fields = extract_fields(raw)
    attempt = context.attempt
    matches = match_findings(context.learner_text, context.expected_findings)

    if isinstance(fields, Parsed):
        score = max(0, min(MAX_SCORE, fields.score))
        feedback = fields.feedback
        outcome, reason = "parsed", None
    else:
        score = compute_score(matches, attempt.attempt_number, attempt.first_matches)
        credited = [
            now or bool(attempt.first_matches and attempt.first_matches[i])
            for i, now in enumerate(matches)
        ]
        feedback = fields.feedback or fallback_feedback(
            sum(credited), len(matches), attempt.attempt_number
        )
        outcome, reason = "fallback", fields.reason
        logger.info("Grading reply fell back to deterministic score (%s): %s", fields.reason, score)

    at_max = score >= context.round_maximum()
    clue_given = fields.clue_given if fields.clue_given is not None else not at_max

    return EvaluationResult(
        feedback=feedback,
        score=score,
        show_expected=at_max,
        clue_given=clue_given,
        outcome=outcome,
        reason=reason,
        matches=matches,
    )
