"""Data models for complaint records and sessions"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ComplaintCategory(str, Enum):
    DELAY = "Delay"
    LOST = "Lost"
    DAMAGE = "Damage"
    INVALID = "Invalid"
    OTHERS = "Others"


class SentimentLevel(str, Enum):
    ANGRY = "Angry"
    UNHAPPY = "Unhappy"
    NEUTRAL = "Neutral"
    POSITIVE = "Positive"


class PriorityLevel(str, Enum):
    URGENT = "Urgent"
    NORMAL = "Normal"
    LOW = "Low"


class ComplaintStatus(str, Enum):
    PENDING = "pending"
    DRAFTED = "drafted"
    SENT = "sent"
    RESOLVED = "resolved"
    AUTO_RESOLVED = "auto_resolved"

    @property
    def is_terminal(self) -> bool:
        return self in (ComplaintStatus.SENT, ComplaintStatus.RESOLVED, ComplaintStatus.AUTO_RESOLVED)

    @property
    def rank(self) -> int:
        """Position in the lifecycle; a record's rank never decreases"""
        if self is ComplaintStatus.PENDING:
            return 0
        if self is ComplaintStatus.DRAFTED:
            return 1
        return 2


class ComplaintSource(str, Enum):
    PORTAL = "portal"
    MAIL = "mail"


class ComplaintKind(str, Enum):
    COMPLAINT = "Complaint"
    FEEDBACK = "Feedback"


class UserRole(str, Enum):
    CITIZEN = "citizen"
    OFFICIAL = "official"


# Labels the model sometimes answers with instead of the canonical values
_SENTIMENT_SYNONYMS = {
    "negative": SentimentLevel.UNHAPPY,
    "very negative": SentimentLevel.ANGRY,
    "frustrated": SentimentLevel.ANGRY,
}
_PRIORITY_SYNONYMS = {
    "high": PriorityLevel.URGENT,
    "medium": PriorityLevel.NORMAL,
}


def _match_enum(enum_cls, value: Any, synonyms: Optional[dict] = None, fallback=None):
    if isinstance(value, enum_cls):
        return value
    text = str(value or "").strip().lower()
    for member in enum_cls:
        if member.value.lower() == text or member.name.lower() == text:
            return member
    if synonyms and text in synonyms:
        return synonyms[text]
    if fallback is not None:
        return fallback
    raise ValueError(f"{value!r} is not a valid {enum_cls.__name__}")


class AnalysisResult(BaseModel):
    """Structured classification returned by the analysis client"""
    model_config = ConfigDict(populate_by_name=True)

    category: ComplaintCategory
    sentiment: SentimentLevel
    priority: PriorityLevel
    summary: str = Field(default="", validation_alias=AliasChoices("summary", "response", "draftSummary"))
    requires_review: bool = Field(validation_alias=AliasChoices("requires_review", "requiresReview"))
    confidence_score: float = Field(
        default=0.0, validation_alias=AliasChoices("confidence_score", "confidenceScore")
    )

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v):
        """Unknown categories fall back to Others"""
        return _match_enum(ComplaintCategory, v, fallback=ComplaintCategory.OTHERS)

    @field_validator("sentiment", mode="before")
    @classmethod
    def validate_sentiment(cls, v):
        return _match_enum(SentimentLevel, v, _SENTIMENT_SYNONYMS, fallback=SentimentLevel.NEUTRAL)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v):
        return _match_enum(PriorityLevel, v, _PRIORITY_SYNONYMS)

    @field_validator("confidence_score", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        """Clamp to [0, 1]; percentages are rescaled, NaN and infinities become 0"""
        score = float(v if v is not None else 0.0)
        if not math.isfinite(score):
            return 0.0
        if score > 1.0 and score <= 100.0:
            score = score / 100.0
        return min(max(score, 0.0), 1.0)


class ComplaintRecord(BaseModel):
    """One citizen grievance or feedback item and its processing history"""

    id: str = Field(default_factory=lambda: str(uuid4()), frozen=True)
    original_text: str = Field(frozen=True)
    subject: str
    customer_id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    status: ComplaintStatus = ComplaintStatus.PENDING
    kind: ComplaintKind = ComplaintKind.COMPLAINT
    source: ComplaintSource = ComplaintSource.PORTAL
    order_id: Optional[str] = None
    location: Optional[str] = None

    # Classification, empty until analysis succeeds
    category: Optional[ComplaintCategory] = None
    sentiment: Optional[SentimentLevel] = None
    priority: Optional[PriorityLevel] = None
    summary: Optional[str] = None
    requires_review: Optional[bool] = None
    confidence_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    # Response artifacts
    ai_response: Optional[str] = None
    formal_email_draft: Optional[str] = None
    admin_response: Optional[str] = None

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @property
    def is_classified(self) -> bool:
        return self.category is not None

    @property
    def has_draft(self) -> bool:
        return bool(self.formal_email_draft and self.formal_email_draft.strip())

    def with_analysis(self, analysis: AnalysisResult, **changes: Any) -> "ComplaintRecord":
        """Return a copy carrying the classification plus any extra field changes"""
        update = {
            "category": analysis.category,
            "sentiment": analysis.sentiment,
            "priority": analysis.priority,
            "summary": analysis.summary,
            "requires_review": analysis.requires_review,
            "confidence_score": analysis.confidence_score,
        }
        update.update(changes)
        return self.model_copy(update=update)


class UserSession(BaseModel):
    """Authenticated identity for the current login"""
    identity: str
    role: UserRole
    name: str

    @property
    def is_official(self) -> bool:
        return self.role is UserRole.OFFICIAL


class PostOrder(BaseModel):
    """Illustrative tracked order shown to a citizen"""
    id: str
    tracking_id: str
    origin: str
    destination: str
    status: str
    estimated_delivery: str
