"""LLM document classification through the Case.dev OpenAI-compatible gateway."""

import json
import logging
import math
import re
from typing import Any, Optional

import openai
from openai import AsyncOpenAI
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config.settings import get_settings
from ..schemas.evidence import ISO_DATE_PATTERN, ClassificationResult, EvidenceCategory
from .base import API_KEY_ENV_VAR, APIError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_RELEVANCE = 50
DEFAULT_CONFIDENCE = 0.5
MAX_SUGGESTED_TAGS = 5
UNCLASSIFIED_SUMMARY = "Unable to classify document"

SYSTEM_PROMPT = """You are an expert legal document classifier. Analyze the provided document and classify it into one of these categories:
- contract: Legal contracts, agreements, terms of service
- email: Email correspondence, email threads
- photo: Photographs, images (non-document)
- handwritten_note: Handwritten notes, annotations, sketches
- medical_record: Medical records, health documents, lab results
- financial_document: Financial statements, invoices, receipts, bank statements
- legal_filing: Court filings, pleadings, motions, briefs
- correspondence: Letters, memos, formal correspondence (non-email)
- report: Reports, analyses, summaries
- other: Documents that don't fit other categories

Also:
1. Suggest relevant tags (3-5 tags)
2. Provide a brief summary (1-2 sentences)
3. Extract any dates mentioned
4. Rate relevance to litigation (0-100)

Respond in JSON format:
{
  "category": "category_name",
  "confidence": 0.95,
  "suggestedTags": ["tag1", "tag2", "tag3"],
  "summary": "Brief summary of the document",
  "dateDetected": "2024-01-15 or null if no date found",
  "relevanceScore": 85
}"""

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
TAG_SEPARATOR_PATTERN = re.compile(r"[_-]")


def _coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def coerce_relevance(value: Any) -> int:
    """Clamp a relevance score to 0-100; unparseable values become 50."""
    number = _coerce_number(value)
    if number is None:
        return DEFAULT_RELEVANCE
    return int(round(min(100.0, max(0.0, number))))


def coerce_confidence(value: Any) -> float:
    number = _coerce_number(value)
    if number is None:
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, number))


def normalize_tags(raw_tags: Any) -> list[str]:
    """Replace underscore/hyphen separators with spaces and keep at most 5 tags."""
    if not isinstance(raw_tags, list):
        return []
    tags = []
    for tag in raw_tags:
        if not isinstance(tag, str):
            continue
        cleaned = " ".join(TAG_SEPARATOR_PATTERN.sub(" ", tag).split())
        if cleaned and cleaned not in tags:
            tags.append(cleaned)
    return tags[:MAX_SUGGESTED_TAGS]


def normalize_date(value: Any) -> Optional[str]:
    """Keep only a leading ISO date (YYYY-MM-DD); anything else is dropped."""
    if not isinstance(value, str):
        return None
    match = ISO_DATE_PATTERN.match(value.strip())
    return match.group(0) if match else None


def unclassified_result() -> ClassificationResult:
    return ClassificationResult(
        category=EvidenceCategory.OTHER,
        confidence=DEFAULT_CONFIDENCE,
        suggested_tags=[],
        summary=UNCLASSIFIED_SUMMARY,
        relevance_score=DEFAULT_RELEVANCE,
    )


def parse_classification(content: str) -> ClassificationResult:
    """
    Parse a model response into a ClassificationResult.

    Handles JSON wrapped in prose or markdown code blocks. A response with
    no parseable JSON object yields category ``other`` with an explanatory
    summary instead of raising.
    """
    match = JSON_OBJECT_PATTERN.search(content or "")
    if not match:
        logger.error("Classification response contained no JSON object")
        return unclassified_result()

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse classification response: {e}")
        return unclassified_result()

    if not isinstance(parsed, dict):
        logger.error("Classification response JSON is not an object")
        return unclassified_result()

    summary = parsed.get("summary")
    return ClassificationResult(
        category=EvidenceCategory.parse(parsed.get("category") or "other"),
        confidence=coerce_confidence(parsed.get("confidence")),
        suggested_tags=normalize_tags(parsed.get("suggestedTags")),
        summary=summary if isinstance(summary, str) else "",
        date_detected=normalize_date(parsed.get("dateDetected")),
        relevance_score=coerce_relevance(parsed.get("relevanceScore")),
    )


class ClassificationClient:
    """Classifies evidence documents with an LLM.

    Uses the OpenAI SDK against the Case.dev LLM gateway, which exposes an
    OpenAI-compatible ``/chat/completions`` endpoint and routes to the
    configured model.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        settings = get_settings()
        self.api_key = api_key
        self.base_url = base_url or settings.llm_base_url
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.text_max_chars = settings.classify_text_max_chars
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy initialization of the OpenAI client."""
        if self._client is None:
            key = self.api_key or get_settings().casedev_api_key
            if not key:
                raise ConfigurationError(
                    f"API key not provided. Set {API_KEY_ENV_VAR} "
                    f"environment variable or pass api_key to constructor."
                )
            self._client = AsyncOpenAI(api_key=key, base_url=self.base_url)
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception_type((openai.APITimeoutError, openai.RateLimitError)),
        reraise=True,
    )
    async def _create_completion(self, messages: list[dict[str, str]]) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if not response.choices:
            return "{}"
        return response.choices[0].message.content or "{}"

    async def complete(self, messages: list[dict[str, str]]) -> str:
        """Run a chat completion and return the message content."""
        try:
            return await self._create_completion(messages)
        except openai.APIError as e:
            raise APIError(
                f"Classification request failed: {e}",
                status_code=getattr(e, "status_code", None),
            ) from e

    def build_messages(self, text: str, filename: str, content_type: str) -> list[dict[str, str]]:
        user_prompt = (
            f"Filename: {filename}\n"
            f"Content Type: {content_type}\n\n"
            f"Document Text (first {self.text_max_chars} characters):\n"
            f"{text[:self.text_max_chars]}"
        )
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

    async def classify(self, text: str, filename: str, content_type: str) -> ClassificationResult:
        """Classify a document from its text (or its filename when no text exists)."""
        content = await self.complete(self.build_messages(text, filename, content_type))
        return parse_classification(content)
