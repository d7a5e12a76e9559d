from __future__ import annotations

from typing import List

from radsim.api.services.service_feedback.evaluation import AttemptContext
from radsim.schema.case_schema import Case
from radsim.utils.case_scoring import points_per_finding

# Bump together with response_parser.LABELS when the trailer format changes.
PROMPT_FORMAT_VERSION = "2"

SYSTEM_INSTRUCTION = """You are a radiology expert giving feedback to a trainee using the Socratic method. Follow these instructions strictly:

1. For correct findings:
   - Congratulate the trainee by paraphrasing the findings they got right.
2. For missed findings:
   - Ask them to review the relevant area without revealing the finding.
   - Give ONE clue per missed finding.
   - Never use words from the diagnosis in a clue and never name the diagnosis.
3. For misinterpreted findings:
   - Encourage them to consider other etiologies, for example "Consider other possible etiologies for the abnormality you described."
   - Do not disclose the correct diagnosis.
4. For extra findings not in the case:
   - Tell them: "The abnormality you described was not included among the findings for this case. If you consider it relevant, please submit it in the feedback section."
5. Never reveal an expected finding that the trainee has not already identified.
6. End every reply with the four labeled lines requested in the prompt, and nothing after them."""


def _bullets(items: List[str]) -> str:
    if not items:
        return "- (none)"
    return "\n".join(f"- {item}" for item in items)


def _numbered(items: List[str]) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


def _trailer(score_hint: str, show_hint: str) -> str:
    return (
        "Format your response exactly as:\n"
        "FEEDBACK: [your Socratic feedback]\n"
        f"SCORE: [{score_hint}]\n"
        "CLUE_GIVEN: [true if you gave at least one clue, otherwise false]\n"
        f"SHOW_EXPECTED: [{show_hint}]"
    )


def build_prompt(case: Case, learner_text: str, attempt: AttemptContext) -> str:
    """
    Grading instruction for one attempt. The trailer labels are parsed by
    response_parser; keep both files on the same PROMPT_FORMAT_VERSION.
    """
    findings = case.gradable_findings
    ppf = points_per_finding(len(findings))

    header = (
        f"Evaluate this radiology trainee's impression (prompt format v{PROMPT_FORMAT_VERSION}).\n\n"
        "Case Information:\n"
        f"Title: {case.title}\n"
        f"Accession Number: {case.accession_number}\n"
        f"Clinical Information: {case.clinical_info}\n"
        f"Number of Images: {len(case.images)}\n\n"
        f"Expected Findings ({len(findings)} findings, {ppf} points each). "
        "Use these for grading only and DO NOT reveal them verbatim:\n"
        f"{_numbered(findings)}\n\n"
        "Additional Findings (context only, not scored):\n"
        f"{_bullets(case.additional_findings)}\n\n"
    )

    if attempt.attempt_number == 1:
        body = (
            "Trainee's impression:\n"
            f"\"{learner_text}\"\n\n"
            "Scoring rules:\n"
            f"- Award {ppf} points for each expected finding correctly detected and interpreted.\n"
            "- Award no points for missing or misinterpreted findings; the trainee may try once more.\n"
            "- Give ONE Socratic clue per missed finding and never reveal a missed finding.\n\n"
        )
        return header + body + _trailer(
            "total points for this attempt, an integer from 0 to 100",
            "true only if every expected finding was identified, otherwise false",
        )

    credited = attempt.first_matches or [False] * len(findings)
    already = [str(i) for i, hit in enumerate(credited, start=1) if hit]
    body = (
        "This is the trainee's SECOND and final attempt, made after receiving clues.\n\n"
        "First attempt:\n"
        f"\"{attempt.first_attempt_text or ''}\"\n\n"
        "Second attempt:\n"
        f"\"{learner_text}\"\n\n"
        "Scoring rules:\n"
        f"- Findings already credited on the first attempt (numbers: {', '.join(already) or 'none'}) "
        f"keep their {ppf} points.\n"
        f"- Award {ppf // 2} points for each remaining finding identified on this attempt.\n"
        "- Award no points for findings still not identified.\n"
        "- Explain what was missed without quoting the expected findings list.\n\n"
    )
    return header + body + _trailer(
        "total score including both attempts, an integer from 0 to 100",
        "true only if every expected finding has now been identified, otherwise false",
    )
