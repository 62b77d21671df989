"""Pytest configuration and shared fixtures for testing"""

import sys
from pathlib import Path
from typing import List, Optional

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from postdesk.analysis.base import BaseAnalysisClient, ChatTurn
from postdesk.analytics.metrics import WorkflowMetrics
from postdesk.config import AppConfig
from postdesk.errors import AnalysisError
from postdesk.mail.inbox_client import SimulatedInboxClient
from postdesk.memory.models import (
    AnalysisResult,
    ComplaintCategory,
    PriorityLevel,
    SentimentLevel,
    UserRole,
    UserSession,
)
from postdesk.memory.session import PreferenceStore, SessionStore
from postdesk.memory.storage import LocalStorage
from postdesk.memory.store import ComplaintStore
from postdesk.workflow.controller import ComplaintLifecycleController

DEFAULT_DRAFT = (
    "Subject: Your recent complaint\n\n"
    "Dear Customer, we are sorry for the trouble with your article and have escalated it.\n\n"
    "Postal Customer Support Team"
)


class ScriptedAnalysisClient(BaseAnalysisClient):
    """Analysis client double returning a fixed classification and draft"""

    def __init__(self, result: Optional[AnalysisResult] = None, draft: str = DEFAULT_DRAFT):
        self.result = result or AnalysisResult(
            category=ComplaintCategory.DELAY,
            sentiment=SentimentLevel.ANGRY,
            priority=PriorityLevel.URGENT,
            summary="Parcel delayed in transit",
            requires_review=True,
            confidence_score=0.92,
        )
        self.draft = draft
        self.fail_classify = False
        self.fail_draft = False
        self.classify_calls: List[str] = []
        self.draft_calls: List[dict] = []
        self.chat_calls: List[tuple] = []

    async def classify(self, text: str) -> AnalysisResult:
        self.classify_calls.append(text)
        if self.fail_classify:
            raise AnalysisError("classification unavailable")
        return self.result

    async def draft_response(self, text, category, sentiment, priority, language='en') -> str:
        self.draft_calls.append({
            'text': text,
            'category': category,
            'sentiment': sentiment,
            'priority': priority,
            'language': language,
        })
        if self.fail_draft:
            raise AnalysisError("drafting unavailable")
        return self.draft

    async def chat(self, message: str, history: List[ChatTurn]) -> str:
        self.chat_calls.append((message, list(history)))
        return f"echo: {message}"


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    """Settings pointing at a temporary state file with delays disabled"""
    return AppConfig(
        state_file=str(tmp_path / "state.json"),
        stage_delay_scale=0.0,
        mail_delay_scale=0.0,
        reports_dir=str(tmp_path / "reports"),
    )


@pytest.fixture
def storage(config: AppConfig) -> LocalStorage:
    return LocalStorage(config.state_file)


@pytest.fixture
def store(storage: LocalStorage) -> ComplaintStore:
    return ComplaintStore(storage)


@pytest.fixture
def sessions(storage: LocalStorage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def preferences(storage: LocalStorage) -> PreferenceStore:
    return PreferenceStore(storage)


@pytest.fixture
def analysis_client() -> ScriptedAnalysisClient:
    return ScriptedAnalysisClient()


@pytest.fixture
def inbox() -> SimulatedInboxClient:
    return SimulatedInboxClient(delay_scale=0.0)


@pytest.fixture
def metrics() -> WorkflowMetrics:
    return WorkflowMetrics()


@pytest.fixture
def controller(store, sessions, preferences, analysis_client, inbox, metrics, config) -> ComplaintLifecycleController:
    return ComplaintLifecycleController(
        store=store,
        sessions=sessions,
        preferences=preferences,
        analysis_client=analysis_client,
        mail_client=inbox,
        metrics=metrics,
        stage_delay_scale=config.stage_delay_scale,
        portal_region=config.portal_region,
    )


@pytest.fixture
def citizen(sessions: SessionStore) -> UserSession:
    """Log in a citizen"""
    return sessions.login(UserSession(identity="9876543210", role=UserRole.CITIZEN, name="Citizen User"))


@pytest.fixture
def official(sessions: SessionStore) -> UserSession:
    """Log in an official"""
    return sessions.login(UserSession(identity="admin", role=UserRole.OFFICIAL, name="Post Master"))
