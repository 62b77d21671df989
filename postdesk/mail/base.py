"""Mail sync client contract"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class InboundMail(BaseModel):
    """A complaint message fetched from an external inbox"""
    id: str
    sender_address: str
    subject: str
    text: str
    timestamp: datetime
    location: Optional[str] = None


class BaseMailClient(ABC):
    """Fetches externally sourced complaints and transmits replies"""

    @abstractmethod
    async def fetch_new(self) -> List[InboundMail]:
        """
        Fetch the current batch of inbound complaints

        Raises:
            SyncError: the inbox could not be reached
        """

    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> bool:
        """
        Transmit a reply

        Raises:
            DispatchError: the message could not be sent
        """
