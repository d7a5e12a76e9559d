"""Prompt builder, response parser, grader and the OpenRouter client."""

import json

import httpx
import pytest

from radsim.api.services.service_feedback.evaluation import (
    AttemptContext,
    Fallback,
    FallbackContext,
    Parsed,
)
from radsim.api.services.service_feedback.grader import MISSING_KEY_MESSAGE, CaseGrader
from radsim.api.services.service_feedback.llm_client import (
    OpenRouterClient,
    TextGenerationConfigError,
    TextGenerationError,
)
from radsim.api.services.service_feedback.prompt_builder import SYSTEM_INSTRUCTION, build_prompt
from radsim.api.services.service_feedback.response_parser import (
    LABELS,
    extract_fields,
    parse_response,
)

from conftest import FakeTextGenerator, make_case

FINDINGS = ["pneumothorax", "rib fracture"]


def _context(text, attempt=None):
    return FallbackContext(learner_text=text, expected_findings=FINDINGS, attempt=attempt or AttemptContext())


# ─── Prompt builder ────────────────────────────────────────────


def test_first_attempt_prompt_contents(case):
    prompt = build_prompt(case, "There is a pneumothorax.", AttemptContext())
    assert case.title in prompt
    assert case.accession_number in prompt
    assert case.clinical_info in prompt
    assert "Number of Images: 2" in prompt
    assert "1. pneumothorax" in prompt
    assert "2. rib fracture" in prompt
    assert "DO NOT reveal them verbatim" in prompt
    assert "subcutaneous emphysema" in prompt
    assert '"There is a pneumothorax."' in prompt
    assert "Award 50 points" in prompt


def test_prompt_asks_for_every_parsed_label(case):
    prompt = build_prompt(case, "text", AttemptContext())
    for label in LABELS:
        assert f"{label}:" in prompt


def test_second_attempt_prompt_mentions_first_round(case):
    attempt = AttemptContext(
        attempt_number=2,
        first_attempt_text="There is a pneumothorax.",
        first_matches=[True, False],
    )
    prompt = build_prompt(case, "pneumothorax and rib fracture", attempt)
    assert "SECOND and final attempt" in prompt
    assert '"There is a pneumothorax."' in prompt
    assert "(numbers: 1)" in prompt
    assert "Award 25 points" in prompt


def test_prompt_skips_blank_findings():
    case = make_case(expected_findings=["pneumothorax", "  ", "rib fracture"])
    prompt = build_prompt(case, "text", AttemptContext())
    assert "2. rib fracture" in prompt
    assert "3." not in prompt


def test_system_instruction_forbids_revealing():
    assert "Never reveal" in SYSTEM_INSTRUCTION


# ─── Response parser ───────────────────────────────────────────


def test_extract_fields_tagged_result():
    parsed = extract_fields("FEEDBACK: Good look.\nSCORE: 50\nCLUE_GIVEN: true\nSHOW_EXPECTED: false")
    assert isinstance(parsed, Parsed)
    assert parsed.feedback == "Good look."
    assert parsed.score == 50
    assert parsed.clue_given is True
    assert parsed.show_expected is False

    assert isinstance(extract_fields("FEEDBACK: Hmm."), Fallback)
    assert extract_fields("").reason == "empty response"
    assert extract_fields("FEEDBACK: x\nSCORE: N/A").reason == "unparseable SCORE"


def test_multiline_feedback_and_markdown_labels():
    raw = (
        "**FEEDBACK:** You found the pneumothorax.\n"
        "Look again at the ribs.\n"
        "**SCORE:** 50\n"
        "**CLUE_GIVEN:** true\n"
        "**SHOW_EXPECTED:** false"
    )
    result = parse_response(raw, _context("There is a pneumothorax."))
    assert result.outcome == "parsed"
    assert result.score == 50
    assert result.feedback.startswith("You found the pneumothorax.")
    assert "ribs" in result.feedback
    assert "SCORE" not in result.feedback


def test_labels_are_case_insensitive():
    result = parse_response("feedback: ok\nscore: 100\nclue_given: false", _context("pneumothorax, rib fracture"))
    assert result.score == 100
    assert result.show_expected is True
    assert result.clue_given is False


def test_score_is_clamped():
    assert parse_response("FEEDBACK: x\nSCORE: 150", _context("")).score == 100
    assert parse_response("FEEDBACK: x\nSCORE: -20", _context("")).score == 0


def test_zero_score_is_a_valid_parse():
    result = parse_response("FEEDBACK: Not quite.\nSCORE: 0", _context("normal study"))
    assert result.outcome == "parsed"
    assert result.score == 0


def test_show_expected_forced_false_below_maximum():
    raw = "FEEDBACK: x\nSCORE: 50\nCLUE_GIVEN: false\nSHOW_EXPECTED: true"
    result = parse_response(raw, _context("There is a pneumothorax."))
    assert result.show_expected is False


def test_missing_score_falls_back_to_matcher():
    result = parse_response("FEEDBACK: Nice try.", _context("There is a pneumothorax."))
    assert result.outcome == "fallback"
    assert result.reason == "missing SCORE"
    assert result.score == 50
    assert result.feedback == "Nice try."
    assert result.matches == [True, False]
    assert result.clue_given is True


def test_empty_reply_gets_deterministic_feedback():
    result = parse_response("", _context("There is a pneumothorax."))
    assert result.outcome == "fallback"
    assert result.score == 50
    assert "1 of 2" in result.feedback


def test_fallback_on_second_attempt_uses_half_credit():
    attempt = AttemptContext(attempt_number=2, first_attempt_text="pneumothorax", first_matches=[True, False])
    result = parse_response("no trailer at all", _context("pneumothorax and rib fracture", attempt))
    assert result.score == 75
    assert result.show_expected is True


# ─── Grader ────────────────────────────────────────────────────


def test_grader_happy_path(case):
    gen = FakeTextGenerator("FEEDBACK: Good.\nSCORE: 50\nCLUE_GIVEN: true\nSHOW_EXPECTED: false")
    result = CaseGrader(gen).grade(case, "There is a pneumothorax.", AttemptContext())
    assert result.score == 50
    assert not result.is_error
    assert len(gen.prompts) == 1


def test_grader_without_key_makes_no_call(case):
    gen = FakeTextGenerator(configured=False)
    result = CaseGrader(gen).grade(case, "There is a pneumothorax.", AttemptContext())
    assert result.is_error
    assert result.error_kind == "configuration"
    assert result.feedback == MISSING_KEY_MESSAGE
    assert gen.prompts == []


def test_grader_transport_error(case):
    gen = FakeTextGenerator(TextGenerationError("HTTP 500 from the grading service"))
    result = CaseGrader(gen).grade(case, "There is a pneumothorax.", AttemptContext())
    assert result.is_error
    assert result.error_kind == "transport"
    assert result.score == 0
    assert "HTTP 500" in result.feedback


def test_grader_unexpected_error_is_contained(case):
    gen = FakeTextGenerator(RuntimeError("boom"))
    result = CaseGrader(gen).grade(case, "text", AttemptContext())
    assert result.is_error


# ─── OpenRouter client ─────────────────────────────────────────


def _completion(content):
    return {
        "id": "gen-1",
        "object": "chat.completion",
        "created": 0,
        "model": "test/model",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }


def _client(handler, api_key="sk-test"):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return OpenRouterClient(
        api_key,
        base_url="https://openrouter.test/api/v1",
        model="test/model",
        http_client=http,
    )


def test_client_sends_chat_completion():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        seen["title"] = request.headers.get("X-Title")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion("FEEDBACK: ok\nSCORE: 50"))

    reply = _client(handler).generate("the prompt", "the system")
    assert reply == "FEEDBACK: ok\nSCORE: 50"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["title"] == "RadSim"
    assert seen["body"]["model"] == "test/model"
    assert seen["body"]["messages"][0] == {"role": "system", "content": "the system"}
    assert seen["body"]["messages"][1] == {"role": "user", "content": "the prompt"}


def test_client_maps_http_500():
    def handler(request):
        return httpx.Response(500, json={"error": {"message": "upstream failure"}})

    with pytest.raises(TextGenerationError, match="HTTP 500"):
        _client(handler).generate("p", "s")


def test_client_rejects_empty_reply():
    def handler(request):
        return httpx.Response(200, json=_completion(""))

    with pytest.raises(TextGenerationError):
        _client(handler).generate("p", "s")


def test_client_without_key():
    def handler(request):
        raise AssertionError("no request expected")

    client = _client(handler, api_key="")
    assert not client.configured
    with pytest.raises(TextGenerationConfigError):
        client.generate("p", "s")


def test_http_500_end_to_end_leaves_an_error_result(case):
    """Scenario 4 through the real client: readable error, score 0."""
    def handler(request):
        return httpx.Response(500, json={"error": {"message": "upstream failure"}})

    result = CaseGrader(_client(handler)).grade(case, "There is a pneumothorax.", AttemptContext())
    assert result.is_error
    assert result.score == 0
    assert result.feedback.startswith("Error communicating with the grading service")


# ─── Prompt and parser together ────────────────────────────────


class _EchoTrailer:
    """Answers any prompt that asks for the four labels with a fixed block."""

    configured = True

    def __init__(self, feedback, score, clue, show):
        self.block = f"FEEDBACK: {feedback}\nSCORE: {score}\nCLUE_GIVEN: {clue}\nSHOW_EXPECTED: {show}"

    def generate(self, prompt, system_instruction):
        for label in LABELS:
            assert f"{label}:" in prompt
        return self.block


@pytest.mark.parametrize(
    "attempt, text, score, clue, show",
    [
        (AttemptContext(), "There is a pneumothorax.", 50, True, False),
        (AttemptContext(), "pneumothorax and rib fracture", 100, False, True),
        (
            AttemptContext(attempt_number=2, first_attempt_text="pneumothorax", first_matches=[True, False]),
            "pneumothorax and rib fracture",
            75,
            False,
            True,
        ),
    ],
)
def test_prompt_reply_round_trip(case, attempt, text, score, clue, show):
    feedback = "  Good work on the\n   pneumothorax.   Now   review the chest wall. "
    gen = _EchoTrailer(feedback, score, str(clue).lower(), str(show).lower())
    result = CaseGrader(gen).grade(case, text, attempt)
    assert result.outcome == "parsed"
    assert " ".join(result.feedback.split()) == " ".join(feedback.split())
    assert result.score == score
    assert result.clue_given is clue
    assert result.show_expected is show


_SECOND = AttemptContext(attempt_number=2, first_attempt_text="pneumothorax", first_matches=[True, False])


@pytest.mark.parametrize(
    "raw, text, attempt",
    [
        ("", "There is a pneumothorax.", None),
        ("   \n  ", "There is a pneumothorax.", None),
        ("FEEDBACK:\nSCORE:\nCLUE_GIVEN:\nSHOW_EXPECTED:", "There is a pneumothorax.", None),
        ("SHOW_EXPECTED: true", "There is a pneumothorax.", None),
        ("SHOW_EXPECTED: true SCORE: abc", "There is a pneumothorax.", None),
        ("SCORE: 40", "normal study", None),
        ("SCORE: 99\nSHOW_EXPECTED: yes", "pneumothorax and rib fracture", None),
        ("**SHOW_EXPECTED:** true\n**SCORE:** 50", "pneumothorax and rib fracture", None),
        ("SHOW_EXPECTED: true", "pneumothorax", _SECOND),
        ("FEEDBACK: better\nSCORE: 60\nSHOW_EXPECTED: true", "pneumothorax and rib fracture", _SECOND),
        ("no trailer at all", "I am not sure", _SECOND),
    ],
)
def test_show_expected_needs_the_round_maximum(raw, text, attempt):
    context = _context(text, attempt)
    result = parse_response(raw, context)
    assert result.score < context.round_maximum()
    assert result.show_expected is False
