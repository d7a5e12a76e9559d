from __future__ import annotations

import logging
from typing import Protocol

from radsim.api.services.service_feedback.evaluation import (
    AttemptContext,
    EvaluationResult,
    FallbackContext,
    error_result,
)
from radsim.api.services.service_feedback.llm_client import (
    TextGenerationConfigError,
    TextGenerationError,
)
from radsim.api.services.service_feedback.prompt_builder import SYSTEM_INSTRUCTION, build_prompt
from radsim.api.services.service_feedback.response_parser import parse_response
from radsim.schema.case_schema import Case

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = (
    "AI feedback is unavailable: the OpenRouter API key is missing. "
    "Add OPENROUTER_API_KEY to the server environment to enable grading."
)


class TextGenerator(Protocol):
    @property
    def configured(self) -> bool: ...

    def generate(self, prompt: str, system_instruction: str) -> str: ...


class CaseGrader:
    """Prompt -> grading service -> parsed EvaluationResult. Never raises."""

    def __init__(self, client: TextGenerator):
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client.configured

    def grade(self, case: Case, learner_text: str, attempt: AttemptContext) -> EvaluationResult:
        if not self.client.configured:
            return error_result(MISSING_KEY_MESSAGE, kind="configuration")

        context = FallbackContext(
            learner_text=learner_text,
            expected_findings=case.gradable_findings,
            attempt=attempt,
        )

        try:
            prompt = build_prompt(case, learner_text, attempt)
            raw = self.client.generate(prompt, SYSTEM_INSTRUCTION)
        except TextGenerationConfigError:
            return error_result(MISSING_KEY_MESSAGE, kind="configuration")
        except TextGenerationError as e:
            logger.warning("Grading call failed for case %s: %s", case.id, e)
            return error_result(f"Error communicating with the grading service: {e}")
        except Exception as e:
            logger.exception("Unexpected grading failure for case %s", case.id)
            return error_result(f"An error occurred while grading: {e}")

        return parse_response(raw, context)
