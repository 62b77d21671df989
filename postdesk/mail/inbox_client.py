"""Simulated external inbox

No network is involved: fetching returns a fixed illustrative batch and sending
records the message in an outbox after a short simulated latency.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from .base import BaseMailClient, InboundMail

FETCH_DELAY_SECONDS = 1.5
SEND_DELAY_SECONDS = 2.0

# (id, sender, subject, text, hours ago, location)
SAMPLE_BATCH = [
    (
        'msg-101',
        'amit.sharma82@gmail.com',
        'Speed Post Delay - Order #IN99281',
        'My Speed Post from Bangalore to Delhi has not moved for 4 days. '
        'It is very urgent. Please look into this immediately.',
        2,
        'Karnataka Circle',
    ),
    (
        'msg-102',
        'priya_verma@gmail.com',
        'Damaged parcel received',
        'My parcel arrived today with the box torn open and the item inside broken. '
        'Very disappointed with how it was handled.',
        5,
        'Maharashtra Circle',
    ),
    (
        'msg-103',
        'rajesh.post@gmail.com',
        'Query regarding refund',
        'I was promised a refund for my lost shipment last month and have had '
        'no update on the transaction since.',
        24,
        'Delhi Circle',
    ),
    (
        'msg-104',
        'vicky.p@yahoo.com',
        'Parcel lost in transit - RP4417230IN',
        'My package has not arrived in 2 weeks. Tracking says it is stuck in '
        'Tamil Nadu. This is unacceptable.',
        12,
        'Tamil Nadu Circle',
    ),
    (
        'msg-105',
        'sneha.r@outlook.com',
        'Rude staff at counter',
        'The counter staff at my local post office in Pune were unhelpful and rude '
        'when I went to collect a registered letter.',
        1,
        'Maharashtra Circle',
    ),
]


class SentMail(BaseModel):
    to: str
    subject: str
    body: str
    sent_at: datetime = Field(default_factory=datetime.now)


class SimulatedInboxClient(BaseMailClient):
    """Mail client returning a fixed batch and collecting outbound replies"""

    def __init__(self, delay_scale: float = 1.0, batch: Optional[List[Dict[str, Any]]] = None):
        """
        Initialize simulated inbox

        Args:
            delay_scale: Multiplier on simulated latency (0 disables it)
            batch: Replacement batch as InboundMail field dicts
        """
        self.delay_scale = delay_scale
        self.batch = batch
        self.outbox: List[SentMail] = []
        logger.info("Simulated inbox client initialized")

    async def _latency(self, seconds: float):
        if self.delay_scale > 0:
            await asyncio.sleep(seconds * self.delay_scale)

    def _sample_batch(self) -> List[InboundMail]:
        now = datetime.now()
        return [
            InboundMail(
                id=msg_id,
                sender_address=sender,
                subject=subject,
                text=text,
                timestamp=now - timedelta(hours=hours_ago),
                location=location,
            )
            for msg_id, sender, subject, text, hours_ago, location in SAMPLE_BATCH
        ]

    async def fetch_new(self) -> List[InboundMail]:
        await self._latency(FETCH_DELAY_SECONDS)
        if self.batch is not None:
            mails = [InboundMail.model_validate(item) for item in self.batch]
        else:
            mails = self._sample_batch()
        logger.info(f"[Mail] Fetched {len(mails)} message(s)")
        return mails

    async def send(self, to: str, subject: str, body: str) -> bool:
        logger.info(f"[Mail] Transmitting to: {to}")
        logger.info(f"[Mail] Re: {subject}")
        await self._latency(SEND_DELAY_SECONDS)
        self.outbox.append(SentMail(to=to, subject=subject, body=body))
        return True
