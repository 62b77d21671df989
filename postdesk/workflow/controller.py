"""Complaint lifecycle controller

Drives records from intake through analysis and review to dispatch:

    pending --analysis, review required--> drafted
    pending --analysis, no review-------> pending (now carrying a draft)
    pending/drafted with a draft --dispatch--> sent

sent, resolved and auto_resolved are terminal. Every operation is a coroutine
that suspends at each client call and cosmetic stage delay; operations on
different records may interleave freely. The store's update-by-id is the only
synchronization point, and a write never moves a record's status backwards.
"""

import asyncio
import inspect
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Set, Union

from loguru import logger

from .stages import STAGE_DELAYS, ProcessingStage
from ..analysis.base import BaseAnalysisClient
from ..analytics.metrics import WorkflowMetrics
from ..errors import (
    AnalysisError,
    AuthorizationError,
    DispatchError,
    InvalidTransitionError,
    SyncError,
    ValidationError,
)
from ..mail.base import BaseMailClient
from ..mail.parser import MailParser
from ..memory.models import (
    AnalysisResult,
    ComplaintKind,
    ComplaintRecord,
    ComplaintSource,
    ComplaintStatus,
    UserRole,
    UserSession,
)
from ..memory.session import PreferenceStore, SessionStore
from ..memory.store import ComplaintStore

StageCallback = Callable[[ProcessingStage], Union[None, Awaitable[None]]]

DISPATCHABLE_STATUSES = (ComplaintStatus.PENDING, ComplaintStatus.DRAFTED)
REANALYZABLE_STATUSES = (ComplaintStatus.PENDING, ComplaintStatus.DRAFTED, ComplaintStatus.AUTO_RESOLVED)


class ComplaintLifecycleController:
    """Orchestrate analysis, review and dispatch of complaint records"""

    def __init__(
        self,
        store: ComplaintStore,
        sessions: SessionStore,
        preferences: PreferenceStore,
        analysis_client: BaseAnalysisClient,
        mail_client: BaseMailClient,
        metrics: Optional[WorkflowMetrics] = None,
        parser: Optional[MailParser] = None,
        stage_delay_scale: float = 1.0,
        portal_region: str = 'Delhi Circle'
    ):
        """
        Initialize controller

        Args:
            store: Complaint store (single source of truth)
            sessions: Active session holder, used for role checks
            preferences: Display preferences; the language selects the draft language
            analysis_client: Classification and drafting capability
            mail_client: External inbox capability
            metrics: Workflow counters
            parser: Converts fetched mail into records
            stage_delay_scale: Multiplier on the cosmetic stage delays (0 disables them)
            portal_region: Location tag for portal submissions
        """
        self.store = store
        self.sessions = sessions
        self.preferences = preferences
        self.analysis_client = analysis_client
        self.mail_client = mail_client
        self.metrics = metrics or WorkflowMetrics()
        self.parser = parser or MailParser()
        self.stage_delay_scale = stage_delay_scale
        self.portal_region = portal_region

        # Records currently being analyzed -> stage reached
        self.in_flight: Dict[str, ProcessingStage] = {}
        # Uncommitted draft edits by record id
        self.pending_edits: Dict[str, str] = {}
        # Records whose response is being transmitted
        self.dispatching: Set[str] = set()
        logger.info("Complaint lifecycle controller initialized")

    async def submit_portal_complaint(
        self,
        text: str,
        subject: str,
        kind: Union[ComplaintKind, str] = ComplaintKind.COMPLAINT,
        order_id: Optional[str] = None,
        session: Optional[UserSession] = None
    ) -> ComplaintRecord:
        """
        Store a citizen's complaint and draft an instant response

        The record is stored even if analysis fails; it then stays unclassified
        and can be analyzed later by an official.

        Raises:
            AuthorizationError: no active citizen session
            ValidationError: empty text or subject, or unknown kind
        """
        session = session or self.sessions.require(UserRole.CITIZEN)
        if session.role != UserRole.CITIZEN:
            raise AuthorizationError("Only citizens can submit complaints.")

        text = (text or '').strip()
        subject = (subject or '').strip()
        if not text:
            raise ValidationError("Complaint text cannot be empty.")
        if not subject:
            raise ValidationError("Subject cannot be empty.")
        try:
            kind = ComplaintKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown submission type: {kind}") from None

        record = ComplaintRecord(
            original_text=text,
            subject=subject,
            customer_id=session.identity,
            status=ComplaintStatus.PENDING,
            kind=kind,
            order_id=(order_id or None),
            source=ComplaintSource.PORTAL,
            location=self.portal_region,
        )
        self.metrics.record_submission()
        logger.info(f"[{record.short_id}] Portal {kind.value.lower()} received: {subject[:50]}")

        try:
            analysis = await self.analysis_client.classify(text)
            draft = await self._draft_for(text, analysis)
        except AnalysisError as e:
            logger.warning(f"[{record.short_id}] Submission analysis failed, storing unclassified: {e.message}")
            self.metrics.record_failure('analysis', 'analysis_client', e.message, {'record_id': record.id})
            self.store.add(record)
            return record

        record = record.with_analysis(
            analysis,
            status=ComplaintStatus.PENDING,
            ai_response=draft,
            formal_email_draft=draft,
        )
        self.metrics.record_analysis(analysis.category.value)
        self.metrics.record_draft_created()
        self.store.add(record)
        logger.info(
            f"[{record.short_id}] Classified {analysis.category.value} / {analysis.priority.value}, "
            f"instant response drafted"
        )
        return record

    async def sync_external_source(self) -> List[ComplaintRecord]:
        """
        Pull new complaints from the external inbox

        Items whose identifier is already stored are skipped, so repeated syncs
        of the same batch add each message at most once.

        Raises:
            AuthorizationError: no active official session
            SyncError: the inbox could not be reached
        """
        self.sessions.require(UserRole.OFFICIAL)
        try:
            mails = await self.mail_client.fetch_new()
        except SyncError as e:
            self.metrics.record_failure('sync', 'mail_client', e.message)
            raise
        except Exception as e:
            logger.error(f"Inbox fetch failed: {e}")
            self.metrics.record_failure('sync', 'mail_client', str(e))
            raise SyncError() from e

        new_records = []
        seen = set()
        for mail in mails:
            if mail.id in seen or self.store.contains(mail.id):
                continue
            seen.add(mail.id)
            new_records.append(self.parser.to_record(mail))

        self.store.add_many(new_records)
        self.metrics.record_sync(len(new_records))
        if new_records:
            logger.success(f"Synced {len(new_records)} new complaint(s) from the inbox")
        else:
            logger.info("Inbox sync found no new complaints")
        return new_records

    def needs_analysis(self, record: ComplaintRecord, force: bool = False) -> bool:
        """True if selecting the record should run the processing sequence"""
        if force:
            return record.status in REANALYZABLE_STATUSES
        if record.status not in (ComplaintStatus.PENDING, ComplaintStatus.AUTO_RESOLVED):
            return False
        return not record.has_draft

    async def select_record(
        self,
        record_id: str,
        on_stage: Optional[StageCallback] = None,
        force: bool = False
    ) -> ComplaintRecord:
        """
        Select a record for review, analyzing it first if it has no draft yet

        Re-selecting a record that already carries a draft is a pure read unless
        force is set. The store is written only after both classification and
        drafting succeed.

        Args:
            record_id: Record to select
            on_stage: Called with each ProcessingStage, in order, as it starts
            force: Re-run analysis and replace the draft of a record not yet dispatched

        Raises:
            AuthorizationError: no active official session
            RecordNotFoundError: unknown identifier
            AnalysisError: classification or drafting failed; the record is unchanged
        """
        self.sessions.require(UserRole.OFFICIAL)
        record = self.store.get(record_id)

        if not self.needs_analysis(record, force):
            return record
        if record.id in self.in_flight:
            logger.info(f"[{record.short_id}] Analysis already in progress")
            return record

        logger.info(f"[{record.short_id}] Starting processing sequence")
        try:
            await self._enter_stage(record.id, ProcessingStage.COLLECTION, on_stage)
            await self._pause(ProcessingStage.COLLECTION)
            await self._enter_stage(record.id, ProcessingStage.PREPROCESSING, on_stage)
            await self._pause(ProcessingStage.PREPROCESSING)
            await self._enter_stage(record.id, ProcessingStage.NLP, on_stage)

            analysis = await self.analysis_client.classify(record.original_text)
            await self._pause(ProcessingStage.NLP)
            await self._enter_stage(record.id, ProcessingStage.CLASSIFICATION, on_stage)
            await self._pause(ProcessingStage.CLASSIFICATION)
            await self._enter_stage(record.id, ProcessingStage.SENTIMENT, on_stage)

            draft = await self._draft_for(record.original_text, analysis)
        except AnalysisError as e:
            logger.warning(f"[{record.short_id}] Processing sequence failed: {e.message}")
            self.metrics.record_failure('analysis', 'analysis_client', e.message, {'record_id': record.id})
            raise AnalysisError() from e
        finally:
            self.in_flight.pop(record.id, None)

        self.metrics.record_analysis(analysis.category.value)
        self.metrics.record_draft_created()
        return self._commit_analysis(record.id, analysis, draft)

    def _commit_analysis(self, record_id: str, analysis: AnalysisResult, draft: str) -> ComplaintRecord:
        latest = self.store.get(record_id)

        if latest.status == ComplaintStatus.AUTO_RESOLVED:
            new_status = ComplaintStatus.AUTO_RESOLVED
        elif analysis.requires_review or latest.status == ComplaintStatus.DRAFTED:
            new_status = ComplaintStatus.DRAFTED
        else:
            new_status = ComplaintStatus.PENDING

        if latest.status.rank > new_status.rank:
            logger.warning(
                f"[{latest.short_id}] Record moved to {latest.status.value} during analysis; "
                f"discarding analysis result"
            )
            return latest

        updated = latest.with_analysis(
            analysis,
            status=new_status,
            formal_email_draft=draft,
            ai_response=draft,
        )
        self.store.update(updated)
        logger.info(
            f"[{updated.short_id}] Analysis complete: {analysis.category.value} / "
            f"{analysis.priority.value} -> {new_status.value}"
        )
        return updated

    async def _draft_for(self, text: str, analysis: AnalysisResult) -> str:
        return await self.analysis_client.draft_response(
            text,
            analysis.category.value,
            analysis.sentiment.value,
            analysis.priority.value,
            self.preferences.language,
        )

    async def _enter_stage(self, record_id: str, stage: ProcessingStage, on_stage: Optional[StageCallback]):
        self.in_flight[record_id] = stage
        logger.debug(f"[{record_id[:8]}] Stage {int(stage)}: {stage.label}")
        if on_stage is not None:
            result = on_stage(stage)
            if inspect.isawaitable(result):
                await result

    async def _pause(self, stage: ProcessingStage):
        delay = STAGE_DELAYS.get(stage, 0.0) * self.stage_delay_scale
        if delay > 0:
            await asyncio.sleep(delay)

    def _editable(self, record_id: str) -> ComplaintRecord:
        self.sessions.require(UserRole.OFFICIAL)
        record = self.store.get(record_id)
        if record.status == ComplaintStatus.SENT:
            raise InvalidTransitionError("A dispatched response cannot be edited.")
        return record

    def start_edit(self, record_id: str) -> str:
        """Open an edit buffer seeded with the current draft"""
        record = self._editable(record_id)
        if not record.has_draft:
            raise ValidationError("This record has no draft to edit yet.")
        self.pending_edits[record_id] = record.formal_email_draft
        return record.formal_email_draft

    def edit_draft(self, record_id: str, new_text: str):
        """Replace the uncommitted draft text for a record"""
        self._editable(record_id)
        self.pending_edits[record_id] = new_text

    def cancel_edit(self, record_id: str):
        self.pending_edits.pop(record_id, None)

    def commit_edit(self, record_id: str) -> ComplaintRecord:
        """
        Save the edited draft; status and every other field stay as they are

        Raises:
            InvalidTransitionError: the record has already been dispatched
            ValidationError: nothing to commit or the edited text is empty
        """
        record = self._editable(record_id)
        if record_id not in self.pending_edits:
            raise ValidationError("No pending edit for this record.")
        new_text = self.pending_edits[record_id]
        if not (new_text or '').strip():
            raise ValidationError("Draft cannot be empty.")

        updated = record.model_copy(update={'formal_email_draft': new_text})
        self.store.update(updated)
        del self.pending_edits[record_id]
        self.metrics.record_draft_edited()
        logger.info(f"[{updated.short_id}] Draft edited ({len(new_text)} chars)")
        return updated

    async def dispatch(self, record_id: str) -> ComplaintRecord:
        """
        Finalize the record's draft as the official response

        Mail-sourced records are transmitted to the sender first; a failed
        transmission leaves the record untouched. Portal records are only
        marked as sent.

        Raises:
            AuthorizationError: no active official session
            InvalidTransitionError: record is not pending or drafted
            ValidationError: record has no draft
            DispatchError: transmission failed
        """
        self.sessions.require(UserRole.OFFICIAL)
        record = self.store.get(record_id)
        if record.status not in DISPATCHABLE_STATUSES:
            raise InvalidTransitionError(f"Cannot dispatch a record that is {record.status.value}.")
        if not record.has_draft:
            raise ValidationError("There is no draft to dispatch.")
        if record_id in self.dispatching:
            raise InvalidTransitionError("This response is already being dispatched.")

        # Snapshot; later edits to the draft never reach the sent response
        response_text = record.formal_email_draft

        self.dispatching.add(record_id)
        try:
            if record.source == ComplaintSource.MAIL:
                await self._transmit(record, response_text)
            return self._mark_sent(record_id, response_text)
        finally:
            self.dispatching.discard(record_id)

    async def _transmit(self, record: ComplaintRecord, response_text: str):
        try:
            delivered = await self.mail_client.send(record.customer_id, record.subject, response_text)
        except DispatchError as e:
            self.metrics.record_failure('dispatch', 'mail_client', e.message, {'record_id': record.id})
            raise
        except Exception as e:
            logger.error(f"[{record.short_id}] Transmission failed: {e}")
            self.metrics.record_failure('dispatch', 'mail_client', str(e), {'record_id': record.id})
            raise DispatchError() from e
        if not delivered:
            self.metrics.record_failure('dispatch', 'mail_client', 'not delivered', {'record_id': record.id})
            raise DispatchError()

    def _mark_sent(self, record_id: str, response_text: str) -> ComplaintRecord:
        latest = self.store.get(record_id)
        if latest.status == ComplaintStatus.SENT:
            logger.warning(f"[{latest.short_id}] Already dispatched by another operation")
            return latest

        updated = latest.model_copy(update={
            'status': ComplaintStatus.SENT,
            'admin_response': response_text,
            'timestamp': datetime.now(),
        })
        self.store.update(updated)
        self.pending_edits.pop(record_id, None)
        self.metrics.record_dispatch()
        logger.success(f"[{updated.short_id}] Response dispatched ({updated.source.value})")
        return updated

    def visible_records(
        self,
        source: Optional[ComplaintSource] = None,
        sent: Optional[bool] = None
    ) -> List[ComplaintRecord]:
        """Records the active session may see: citizens get their own, officials get all"""
        session = self.sessions.require()
        if session.is_official:
            return self.store.filter(source=source, sent=sent)
        return self.store.for_customer(session.identity)
