"""Inbound mail parsing"""

import re
from typing import Optional

from loguru import logger

from .base import InboundMail
from ..memory.models import ComplaintKind, ComplaintRecord, ComplaintSource, ComplaintStatus

# Domestic article numbers look like SP1234567IN / RP123456789IN
TRACKING_PATTERN = re.compile(r'\b([A-Z]{2}\d{7,9}IN)\b')
ORDER_PATTERNS = [
    re.compile(r'\border\s*(?:no\.?|number)?\s*#\s*([A-Z0-9-]{4,})', re.IGNORECASE),
    re.compile(r'\b(ORD-\d{1,6})\b'),
    re.compile(r'#([A-Z]{2}\d{4,})\b'),
]


class MailParser:
    """Turn fetched inbox messages into complaint records"""

    def __init__(self):
        logger.debug("Mail parser initialized")

    def extract_order_reference(self, *texts: str) -> Optional[str]:
        """Find an order or tracking reference in the given texts, subject first"""
        for text in texts:
            if not text:
                continue
            match = TRACKING_PATTERN.search(text)
            if match:
                return match.group(1)
            for pattern in ORDER_PATTERNS:
                match = pattern.search(text)
                if match:
                    return match.group(1).upper()
        return None

    def to_record(self, mail: InboundMail) -> ComplaintRecord:
        """Build a pending, externally sourced record from a message"""
        order_id = self.extract_order_reference(mail.subject, mail.text)
        if order_id:
            logger.debug(f"Message {mail.id} references order {order_id}")

        return ComplaintRecord(
            id=mail.id,
            original_text=mail.text,
            subject=mail.subject or '(no subject)',
            customer_id=mail.sender_address,
            timestamp=mail.timestamp,
            status=ComplaintStatus.PENDING,
            kind=ComplaintKind.COMPLAINT,
            source=ComplaintSource.MAIL,
            order_id=order_id,
            location=mail.location,
        )
