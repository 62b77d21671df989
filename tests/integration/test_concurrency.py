"""Integration tests for interleaved controller operations"""

import asyncio

import pytest

from postdesk.errors import DispatchError, InvalidTransitionError
from postdesk.mail.inbox_client import SimulatedInboxClient
from postdesk.memory.models import ComplaintStatus

from conftest import ScriptedAnalysisClient


class GatedAnalysisClient(ScriptedAnalysisClient):
    """Blocks inside classify until released"""

    def __init__(self):
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def classify(self, text):
        self.entered.set()
        await self.release.wait()
        return await super().classify(text)


@pytest.fixture
def gated_client(controller) -> GatedAnalysisClient:
    client = GatedAnalysisClient()
    controller.analysis_client = client
    return client


class TestInterleavedOperations:

    @pytest.mark.asyncio
    async def test_parallel_selects_on_different_records(self, controller, store, analysis_client, official):
        await controller.sync_external_source()

        first, second = await asyncio.gather(
            controller.select_record("msg-101"),
            controller.select_record("msg-102"),
        )

        assert first.status == ComplaintStatus.DRAFTED
        assert second.status == ComplaintStatus.DRAFTED
        assert store.get("msg-101").has_draft
        assert store.get("msg-102").has_draft
        assert len(analysis_client.classify_calls) == 2

    @pytest.mark.asyncio
    async def test_duplicate_select_while_in_flight(self, controller, store, gated_client, official):
        await controller.sync_external_source()

        task = asyncio.create_task(controller.select_record("msg-101"))
        await gated_client.entered.wait()

        assert "msg-101" in controller.in_flight
        again = await controller.select_record("msg-101")
        assert not again.has_draft

        gated_client.release.set()
        record = await task

        assert record.status == ComplaintStatus.DRAFTED
        assert len(gated_client.classify_calls) == 1
        assert controller.in_flight == {}

    @pytest.mark.asyncio
    async def test_status_never_moves_backwards(self, controller, store, gated_client, official):
        await controller.sync_external_source()

        task = asyncio.create_task(controller.select_record("msg-101"))
        await gated_client.entered.wait()
        store.update(store.get("msg-101").model_copy(update={'status': ComplaintStatus.RESOLVED}))
        gated_client.release.set()

        record = await task

        assert record.status == ComplaintStatus.RESOLVED
        assert store.get("msg-101").status == ComplaintStatus.RESOLVED
        assert not store.get("msg-101").is_classified

    @pytest.mark.asyncio
    async def test_dispatch_proceeds_while_other_record_is_analyzed(self, controller, store, inbox, gated_client, official):
        await controller.sync_external_source()
        gated_client.release.set()
        await controller.select_record("msg-102")
        gated_client.release.clear()
        gated_client.entered.clear()

        analysis = asyncio.create_task(controller.select_record("msg-101"))
        await gated_client.entered.wait()
        sent = await controller.dispatch("msg-102")
        gated_client.release.set()
        analyzed = await analysis

        assert sent.status == ComplaintStatus.SENT
        assert analyzed.status == ComplaintStatus.DRAFTED
        assert store.get("msg-102").status == ComplaintStatus.SENT
        assert [m.to for m in inbox.outbox] == [store.get("msg-102").customer_id]

    @pytest.mark.asyncio
    async def test_concurrent_dispatch_transmits_once(self, controller, store, official):
        inbox = SimulatedInboxClient(delay_scale=0.005)
        controller.mail_client = inbox
        await controller.sync_external_source()
        await controller.select_record("msg-101")

        results = await asyncio.gather(
            controller.dispatch("msg-101"),
            controller.dispatch("msg-101"),
            return_exceptions=True,
        )

        sent = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, InvalidTransitionError)]
        assert len(sent) == 1
        assert len(rejected) == 1
        assert len(inbox.outbox) == 1
        assert store.get("msg-101").status == ComplaintStatus.SENT
        assert controller.dispatching == set()

    @pytest.mark.asyncio
    async def test_failed_dispatch_can_be_retried(self, controller, store, official):
        class FlakyInbox(SimulatedInboxClient):
            failed = False

            async def send(self, to, subject, body):
                if not self.failed:
                    self.failed = True
                    raise RuntimeError("smtp timeout")
                return await super().send(to, subject, body)

        controller.mail_client = FlakyInbox(delay_scale=0.0)
        await controller.sync_external_source()
        await controller.select_record("msg-101")

        with pytest.raises(DispatchError):
            await controller.dispatch("msg-101")
        assert controller.dispatching == set()

        record = await controller.dispatch("msg-101")
        assert record.status == ComplaintStatus.SENT
