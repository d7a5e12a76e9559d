import string
from typing import List

MIN_KEY_TERM_LENGTH = 4


def key_terms(finding: str) -> List[str]:
    """
    Lowercased whitespace tokens, trimmed of leading/trailing punctuation,
    that are longer than 3 characters ("Rib fracture." -> ["fracture"]).
    """
    tokens = (t.strip(string.punctuation) for t in finding.lower().split())
    return [t for t in tokens if len(t) >= MIN_KEY_TERM_LENGTH]


def finding_matches(text: str, finding: str) -> bool:
    text_lower = (text or "").lower()
    terms = key_terms(finding)
    if not terms:
        # short findings ("MS", "ASD") only match as a whole
        whole = finding.strip().strip(string.punctuation).strip().lower()
        return bool(whole) and whole in text_lower
    return any(term in text_lower for term in terms)


def match_findings(text: str, expected_findings: List[str]) -> List[bool]:
    """
    One flag per expected finding, in list order: True when any key term
    of the finding appears (case-insensitive) in the learner's text.
    """
    return [finding_matches(text, f) for f in expected_findings]
