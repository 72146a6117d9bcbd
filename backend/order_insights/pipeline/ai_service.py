"""
Insight Generator
=================

Turns a prompt into a validated AIInsight with one OpenAI chat completion.

Related files:
- order_insights/pipeline/prompts.py: SYSTEM_MESSAGE and the user prompt
- order_insights/pipeline/handler.py: Owns the OpenAI client and calls generate()
- order_insights/telemetry/llm_trace.py: Langfuse generation logging

Design:
- The OpenAI client is injected; nothing here reads the environment
- JSON mode plus strict validation of the three required fields
- No retries: a failed generation becomes an error record downstream
"""

from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from openai import OpenAI

from order_insights.pipeline.config import DEFAULT_OPENAI_MODEL
from order_insights.pipeline.prompts import SYSTEM_MESSAGE
from order_insights.telemetry.llm_trace import log_generation

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
MAX_TOKENS = 1000

# Wire field -> AIInsight attribute
REQUIRED_FIELDS = {
    "insight": "insight",
    "followupSubject": "followup_subject",
    "followupBody": "followup_body",
}


class InsightGenerationError(Exception):
    """Base class for AI generation failures."""

    def __init__(self, message: str, raw_response: str = ""):
        super().__init__(message)
        self.message = message
        self.raw_response = raw_response


class EmptyResponseError(InsightGenerationError):
    """The model returned no choices or empty content."""


class MalformedResponseError(InsightGenerationError):
    """The content is not a JSON object."""


class IncompleteResponseError(InsightGenerationError):
    """A required field is missing, not a string, or empty."""


@dataclass
class AIInsight:
    insight: str
    followup_subject: str
    followup_body: str


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 characters per token for English text)."""
    return math.ceil(len(text) / 4)


def parse_insight(content: Optional[str]) -> AIInsight:
    """Validate raw model content into an AIInsight.

    Raises:
        EmptyResponseError: Content is None or blank
        MalformedResponseError: Content is not a JSON object
        IncompleteResponseError: A required field is missing or invalid
    """
    if not content or not content.strip():
        raise EmptyResponseError("Empty response from OpenAI")

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedResponseError("AI response was not valid JSON", raw_response=content) from e

    if not isinstance(parsed, dict):
        raise MalformedResponseError("AI response was not a JSON object", raw_response=content)

    values: Dict[str, str] = {}
    for wire_name, attr in REQUIRED_FIELDS.items():
        value = parsed.get(wire_name)
        if not isinstance(value, str) or not value:
            raise IncompleteResponseError(
                f"Invalid AI response: missing or invalid '{wire_name}' field",
                raw_response=content,
            )
        values[attr] = value

    return AIInsight(**values)


class InsightGenerator:
    """
    Generates order insights with an OpenAI chat model.

    Usage:
        generator = InsightGenerator(OpenAI(api_key=...), model="gpt-3.5-turbo")
        insight = generator.generate(prompt)
    """

    def __init__(self, client: OpenAI, model: str = DEFAULT_OPENAI_MODEL):
        self.client = client
        self.model = model or DEFAULT_OPENAI_MODEL

    def generate(self, prompt: str, trace_metadata: Optional[Dict[str, Any]] = None) -> AIInsight:
        """Call the model once and validate its JSON answer.

        Args:
            prompt: User prompt from build_prompt()
            trace_metadata: Extra context for the Langfuse generation (order id, type)

        Raises:
            InsightGenerationError: On empty, malformed or incomplete output
            openai.OpenAIError: On transport or API failures
        """
        messages = [
            {"role": "system", "content": SYSTEM_MESSAGE},
            {"role": "user", "content": prompt},
        ]

        logger.info(
            f"[AI] Calling OpenAI API with model: {self.model} "
            f"(~{estimate_tokens(SYSTEM_MESSAGE + prompt)} prompt tokens)"
        )
        start = time.time()

        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=TEMPERATURE,
            max_tokens=MAX_TOKENS,
            response_format={"type": "json_object"},
        )

        latency_ms = int((time.time() - start) * 1000)
        content = response.choices[0].message.content if response.choices else None

        log_generation(
            name="order_insight",
            model=self.model,
            input_messages=messages,
            output=content,
            usage=_usage_details(response),
            latency_ms=latency_ms,
            metadata=trace_metadata,
        )

        try:
            insight = parse_insight(content)
        except InsightGenerationError as e:
            logger.error(f"[AI] {e.message}")
            raise

        logger.info(f"[AI] Successfully generated insight ({latency_ms}ms)")
        return insight


def _usage_details(response: Any) -> Optional[Dict[str, int]]:
    usage = getattr(response, "usage", None)
    if usage is None:
        return None
    return {
        "input": getattr(usage, "prompt_tokens", 0) or 0,
        "output": getattr(usage, "completion_tokens", 0) or 0,
        "total": getattr(usage, "total_tokens", 0) or 0,
    }
