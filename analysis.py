"""
AI summary and tags for post content.

Analysis is best effort: any failure yields the fallback result (no tags,
empty summary) and the post is written regardless.
"""

import json
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import google.generativeai as genai

import settings
from logging_config import get_logger

logger = get_logger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"
STATUS_DISABLED = "disabled"

PROMPT_TEMPLATE = """Analyze the following text from a student discussion post.
Provide a very brief summary (max 2 sentences) and a list of 3-5 relevant technical tags.
Respond with a JSON object only with this exact format:
{{
  "summary": "brief summary here",
  "tags": ["tag1", "tag2", "tag3"]
}}

Text: {content}
"""


@dataclass
class AnalysisResult:
    tags: List[str] = field(default_factory=list)
    summary: str = ""
    status: str = STATUS_DISABLED


class ContentAnalyzer(Protocol):
    def analyze(self, content: str) -> AnalysisResult:
        """Return tags and a summary for the content, or a fallback result on failure."""
        ...


def strip_code_fence(raw_text: str) -> str:
    """Return the body of a ```json (or bare ```) fenced block, or the text unchanged."""
    text = raw_text
    if "```json" in text:
        text = text.split("```json", 1)[1].split("```", 1)[0]
    elif "```" in text:
        text = text.split("```", 1)[1].split("```", 1)[0]
    return text.strip()


def parse_analysis(raw_text: str) -> AnalysisResult:
    """Parse the model's JSON reply. Raises ValueError on an unexpected shape."""
    data = json.loads(strip_code_fence(raw_text))
    if not isinstance(data, dict):
        raise ValueError("Analysis response is not a JSON object")
    summary = data.get("summary")
    tags = data.get("tags")
    if not summary or not isinstance(summary, str) or not isinstance(tags, list):
        raise ValueError("Invalid response format from AI model")
    return AnalysisResult(
        tags=[str(t).strip() for t in tags if str(t).strip()],
        summary=summary.strip(),
        status=STATUS_SUCCESS,
    )


class DisabledAnalyzer:
    """Used when no API key is configured."""

    def analyze(self, content: str) -> AnalysisResult:
        return AnalysisResult(status=STATUS_DISABLED)


class GeminiAnalyzer:
    """Content analysis with Google's Gemini API."""

    def __init__(self, api_key: str, model_name: str = settings.GEMINI_MODEL, model=None):
        if not api_key:
            raise ValueError("Missing required GEMINI_API_KEY")
        if model is None:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(model_name=model_name)
        self.model = model
        self.model_name = model_name

    def analyze(self, content: str) -> AnalysisResult:
        if len(content or "") <= settings.AI_MIN_CONTENT_LENGTH:
            return AnalysisResult(status=STATUS_SKIPPED)

        prompt = PROMPT_TEMPLATE.format(content=content[:settings.AI_MAX_CONTENT_CHARS])
        try:
            response = self.model.generate_content(prompt)
            result = parse_analysis(response.text)
        except Exception as e:
            logger.warning("content_analysis_failed", model=self.model_name, error=str(e))
            return AnalysisResult(status=STATUS_FAILED)

        logger.info("content_analysis_succeeded", model=self.model_name, tags=len(result.tags))
        return result


def build_analyzer(api_key: Optional[str] = None) -> ContentAnalyzer:
    api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
    if not api_key:
        logger.warning("content_analysis_disabled", reason="GEMINI_API_KEY not configured")
        return DisabledAnalyzer()
    try:
        return GeminiAnalyzer(api_key)
    except Exception as e:
        logger.warning("content_analysis_disabled", reason=str(e))
        return DisabledAnalyzer()
