"""Gemini-backed analysis client"""

import json
from typing import List, Optional

from google import genai
from google.genai import types
from google.genai.types import Content, Part
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from .base import BaseAnalysisClient, ChatTurn
from .prompts import (
    CHAT_INSTRUCTION,
    INVALID_REJECTION_TEMPLATE,
    SYSTEM_INSTRUCTION,
    build_draft_prompt,
)
from ..config import AppConfig
from ..errors import AnalysisError
from ..memory.models import AnalysisResult, ComplaintCategory
from ..memory.session import DEFAULT_LANGUAGE, LANGUAGE_NAMES


class ClassificationSchema(BaseModel):
    """Response schema requested from the model"""
    category: str
    sentiment: str
    priority: str
    response: str
    requiresReview: bool
    confidenceScore: float


class GeminiAnalysisClient(BaseAnalysisClient):
    """Classify complaints and draft replies with Gemini"""

    def __init__(self, config: Optional[AppConfig] = None, client: Optional[genai.Client] = None):
        """
        Initialize Gemini client

        Args:
            config: Application settings (API key, model name)
            client: Pre-built genai client, mainly for tests
        """
        self.config = config if config is not None else AppConfig.from_env()
        self.model = self.config.gemini_model

        if client is not None:
            self.client = client
        elif self.config.gemini_api_key:
            self.client = genai.Client(api_key=self.config.gemini_api_key)
            logger.info(f"Gemini analysis client configured (model: {self.model})")
        else:
            self.client = None
            logger.warning("Gemini API key not found. Analysis calls will fail until GOOGLE_API_KEY is set.")

    def _require_client(self) -> genai.Client:
        if self.client is None:
            raise AnalysisError("Analysis engine is not configured.")
        return self.client

    async def classify(self, text: str) -> AnalysisResult:
        """Classify complaint text into category, sentiment and priority"""
        client = self._require_client()
        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            response_mime_type="application/json",
            response_schema=ClassificationSchema,
        )

        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=text,
                config=config,
            )
        except Exception as e:
            logger.error(f"Gemini classification call failed: {e}")
            raise AnalysisError() from e

        try:
            payload = json.loads(response.text or '{}')
            result = AnalysisResult.model_validate(payload)
        except (json.JSONDecodeError, ModelValidationError, TypeError) as e:
            logger.error(f"Failed to parse Gemini response: {e}")
            raise AnalysisError("Invalid response from analysis engine.") from e

        logger.debug(
            f"Classified as {result.category.value}/{result.sentiment.value}/{result.priority.value} "
            f"(confidence {result.confidence_score:.2f}, review={result.requires_review})"
        )
        return result

    async def draft_response(
        self,
        text: str,
        category: str,
        sentiment: str,
        priority: str,
        language: str = DEFAULT_LANGUAGE
    ) -> str:
        """Draft an 80-120 word reply in the requested language"""
        # Invalid submissions always get the fixed English notice
        if str(category).lower() == ComplaintCategory.INVALID.value.lower():
            return INVALID_REJECTION_TEMPLATE

        client = self._require_client()
        target_language = LANGUAGE_NAMES.get(language, LANGUAGE_NAMES[DEFAULT_LANGUAGE])
        prompt = build_draft_prompt(text, category, sentiment, priority, target_language)

        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
            )
        except Exception as e:
            logger.error(f"Gemini drafting call failed: {e}")
            raise AnalysisError() from e

        draft = (response.text or '').strip()
        if not draft:
            raise AnalysisError("Analysis engine returned an empty draft.")
        return draft

    async def chat(self, message: str, history: List[ChatTurn]) -> str:
        """Answer an assistant message given the prior turns"""
        client = self._require_client()
        contents = [
            Content(role=turn.role, parts=[Part(text=turn.text)])
            for turn in history
        ]
        contents.append(Content(role="user", parts=[Part(text=message)]))

        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(system_instruction=CHAT_INSTRUCTION),
            )
        except Exception as e:
            logger.error(f"Gemini chat call failed: {e}")
            raise AnalysisError() from e

        return (response.text or '').strip()
