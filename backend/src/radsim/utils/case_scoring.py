from typing import List, Optional

MAX_SCORE = 100


def points_per_finding(finding_count: int) -> int:
    if finding_count <= 0:
        raise ValueError("A case needs at least one expected finding to be scored")
    return MAX_SCORE // finding_count


def _clamp(score: int) -> int:
    return max(0, min(MAX_SCORE, score))


def compute_score(
    matches: List[bool],
    attempt_number: int = 1,
    first_matches: Optional[List[bool]] = None,
) -> int:
    """
    Attempt 1: full points per matched finding.
    Attempt 2: findings matched on attempt 1 keep full points, findings
    first matched on attempt 2 earn half (floored), the rest earn nothing.
    """
    ppf = points_per_finding(len(matches))

    if attempt_number == 1:
        return _clamp(sum(ppf for m in matches if m))

    if attempt_number != 2:
        raise ValueError(f"Unsupported attempt number: {attempt_number}")

    first = first_matches if first_matches is not None else [False] * len(matches)
    if len(first) != len(matches):
        raise ValueError("First-attempt matches do not align with the findings list")

    score = 0
    for before, now in zip(first, matches):
        if before:
            score += ppf
        elif now:
            score += ppf // 2
    return _clamp(score)


def round_maximum(
    finding_count: int,
    attempt_number: int = 1,
    first_matches: Optional[List[bool]] = None,
) -> int:
    """Best score reachable in this round (99 for three findings, not 100)."""
    return compute_score([True] * finding_count, attempt_number, first_matches)


def credited_findings(matches: List[bool], score: int) -> List[bool]:
    """
    First-round flags that the awarded score actually paid for: at most
    score // points_per_finding matched findings stay credited, in list order.
    """
    budget = max(0, score) // points_per_finding(len(matches))
    credited = []
    for m in matches:
        keep = m and budget > 0
        if keep:
            budget -= 1
        credited.append(keep)
    return credited
