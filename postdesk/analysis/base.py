"""Analysis client contract

The workflow only sees this interface. The Gemini client is the production
implementation; tests supply scripted doubles.
"""

from abc import ABC, abstractmethod
from typing import List

from pydantic import BaseModel

from ..memory.models import AnalysisResult


class ChatTurn(BaseModel):
    """One prior message in an assistant conversation"""
    role: str  # 'user' or 'model'
    text: str


class BaseAnalysisClient(ABC):
    """Classifies complaint text and drafts responses"""

    @abstractmethod
    async def classify(self, text: str) -> AnalysisResult:
        """
        Classify complaint text

        Raises:
            AnalysisError: remote call failed or returned unparseable output
        """

    @abstractmethod
    async def draft_response(
        self,
        text: str,
        category: str,
        sentiment: str,
        priority: str,
        language: str = 'en'
    ) -> str:
        """
        Draft a formal reply in the target language

        Raises:
            AnalysisError: remote call failed or returned no text
        """

    @abstractmethod
    async def chat(self, message: str, history: List[ChatTurn]) -> str:
        """Answer one assistant message; the full prior history is resupplied on every call"""
