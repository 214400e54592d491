"""
Memo generation via the Anthropic Messages API.

This is a thin collaborator: it sends the submission to Claude and returns
whatever JSON came back, untyped. Contract enforcement happens in
schemas.validate_memo(); text that is not valid JSON is returned as the raw
string so the validator rejects it as the wrong type.

Transport failures (timeouts, rate limits, API errors) are retried with
jittered backoff and then raised as AnalysisGenerationError.
"""

import asyncio
import json
import logging
import random
import re
from typing import Any, Optional, Protocol

import httpx
from anthropic import AsyncAnthropic, APIError, APITimeoutError, RateLimitError

from ..config.settings import settings
from ..intake.validation import Submission

logger = logging.getLogger(__name__)


class AnalysisGenerationError(Exception):
    """The analysis service could not produce a response at all."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable

    def to_dict(self) -> dict:
        return {"error": "analysis_generation_error", "message": str(self), "retryable": self.retryable}


class MemoGenerator(Protocol):
    async def generate(self, submission: Submission) -> Any: ...


SYSTEM_PROMPT = """You are a venture capital analyst screening inbound startup submissions.
Write a short investment memo for the submission you are given.

Respond with ONLY a JSON object, no prose and no markdown, with exactly these keys:
- "fit_score": integer from 0 to 100, how well the deal fits an early-stage B2B thesis
- "executive_summary": string, 2-4 sentences
- "strengths": array of strings, most important first
- "risks": array of strings, most important first
- "diligence_questions": array of strings
- "fit_reasoning": string explaining the fit_score

Keep fit_reasoning consistent with fit_score: do not describe a deal as very strong,
compelling, or exceptional while giving it a low score."""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def build_prompt(submission: Submission) -> str:
    return (
        f"Company: {submission.company_name}\n"
        f"Website: {submission.website}\n"
        f"Sector: {submission.sector}\n"
        f"Stage: {submission.stage}\n"
        f"Geography: {submission.geography}\n"
        f"\nPitch:\n{submission.pitch}"
    )


def parse_model_output(text: str) -> Any:
    """Strip a markdown code fence if present and decode JSON; return raw text if it is not JSON."""
    cleaned = text.strip()
    match = _CODE_FENCE.match(cleaned)
    if match:
        cleaned = match.group(1)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning(f"Model returned non-JSON memo ({len(text)} chars)")
        return text


class AnthropicMemoGenerator:
    """Generates memos with Claude."""

    def __init__(self, client: Optional[AsyncAnthropic] = None, model: Optional[str] = None):
        self._client = client or AsyncAnthropic(
            api_key=settings.anthropic_api_key,
            timeout=httpx.Timeout(settings.llm_timeout, connect=settings.llm_connect_timeout),
            max_retries=0,  # retries handled below with logging
        )
        self._model = model or settings.llm_model
        self._max_retries = settings.llm_max_retries

    async def generate(self, submission: Submission) -> Any:
        prompt = build_prompt(submission)
        last_error: Optional[Exception] = None

        for attempt in range(self._max_retries + 1):
            try:
                response = await self._client.messages.create(
                    model=self._model,
                    max_tokens=settings.llm_max_tokens,
                    temperature=settings.llm_temperature,
                    system=SYSTEM_PROMPT,
                    messages=[{"role": "user", "content": prompt}],
                )
                logger.debug(
                    f"Claude memo tokens: in={response.usage.input_tokens}, out={response.usage.output_tokens}"
                )
                text = "".join(
                    block.text for block in response.content if getattr(block, "type", "") == "text"
                )
                return parse_model_output(text)

            except APITimeoutError as e:
                last_error = e
                backoff = (2 ** attempt) * random.uniform(0.9, 1.1)
                logger.warning(
                    f"Claude API timeout (attempt {attempt + 1}/{self._max_retries + 1}, "
                    f"backoff={backoff:.1f}s): {submission.company_name}"
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(backoff)
                continue

            except RateLimitError as e:
                last_error = e
                backoff = 10 * (attempt + 1) * random.uniform(0.9, 1.1)
                logger.warning(
                    f"Claude API rate limit (attempt {attempt + 1}/{self._max_retries + 1}, "
                    f"backoff={backoff:.1f}s): {e}"
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(backoff)
                continue

            except APIError as e:
                last_error = e
                status_code = getattr(e, "status_code", None)
                logger.error(f"Claude API error (attempt {attempt + 1}/{self._max_retries + 1}): {e}")
                if attempt < self._max_retries and (status_code is None or status_code >= 500):
                    await asyncio.sleep((2 ** attempt) * random.uniform(0.9, 1.1))
                    continue
                break  # Don't retry client errors (4xx)

        raise AnalysisGenerationError(
            f"Memo generation failed for {submission.company_name}: "
            f"{type(last_error).__name__}: {last_error}",
            retryable=isinstance(last_error, (APITimeoutError, RateLimitError)),
        )
