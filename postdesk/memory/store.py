"""Complaint store backed by local JSON storage"""

from typing import Iterable, List, Optional

from loguru import logger
from pydantic import ValidationError as ModelValidationError

from .models import ComplaintRecord, ComplaintSource, ComplaintStatus
from .storage import LocalStorage
from ..errors import DuplicateRecordError, RecordNotFoundError

# Bump the suffix on schema-breaking changes; older data is abandoned, not migrated
COMPLAINTS_KEY = 'postdesk_complaints_v1'


class ComplaintStore:
    """Ordered collection of complaint records, most recent first"""

    def __init__(self, storage: LocalStorage):
        """
        Initialize complaint store

        Args:
            storage: LocalStorage holding the serialized collection
        """
        self.storage = storage
        self.records: List[ComplaintRecord] = self._load()
        logger.info(f"Complaint store loaded with {len(self.records)} records")

    def _load(self) -> List[ComplaintRecord]:
        """Deserialize the whole collection; any corruption starts empty"""
        raw = self.storage.get_item(COMPLAINTS_KEY)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.error(f"Stored complaints are {type(raw).__name__}, expected list - starting empty")
            return []
        try:
            records = [ComplaintRecord.model_validate(item) for item in raw]
        except (ModelValidationError, TypeError) as e:
            logger.error(f"Error loading complaints, starting empty: {e}")
            return []

        seen = set()
        unique = []
        for record in records:
            if record.id in seen:
                logger.warning(f"Dropping duplicate stored record {record.short_id}")
                continue
            seen.add(record.id)
            unique.append(record)
        return unique

    def _save(self):
        """Serialize the entire collection as one unit"""
        self.storage.set_item(COMPLAINTS_KEY, [r.model_dump(mode='json') for r in self.records])

    def contains(self, record_id: str) -> bool:
        return any(r.id == record_id for r in self.records)

    def find(self, record_id: str) -> Optional[ComplaintRecord]:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def get(self, record_id: str) -> ComplaintRecord:
        record = self.find(record_id)
        if record is None:
            raise RecordNotFoundError(f"No complaint with id {record_id}")
        return record

    def add(self, record: ComplaintRecord) -> ComplaintRecord:
        """Prepend one record"""
        self.add_many([record])
        return record

    def add_many(self, records: Iterable[ComplaintRecord]) -> List[ComplaintRecord]:
        """Prepend records, keeping their given order ahead of existing ones"""
        new_records = list(records)
        if not new_records:
            return []
        ids = [r.id for r in new_records]
        if len(set(ids)) != len(ids):
            raise DuplicateRecordError("Batch contains repeated identifiers")
        for record_id in ids:
            if self.contains(record_id):
                raise DuplicateRecordError(f"Complaint {record_id} already exists")

        self.records = new_records + self.records
        self._save()
        logger.debug(f"Stored {len(new_records)} new record(s)")
        return new_records

    def update(self, record: ComplaintRecord) -> ComplaintRecord:
        """Replace the record with the same id, keeping its position"""
        for index, existing in enumerate(self.records):
            if existing.id == record.id:
                self.records[index] = record
                self._save()
                return record
        raise RecordNotFoundError(f"No complaint with id {record.id}")

    def all(self) -> List[ComplaintRecord]:
        return list(self.records)

    def for_customer(self, customer_id: str) -> List[ComplaintRecord]:
        return [r for r in self.records if r.customer_id == customer_id]

    def filter(
        self,
        source: Optional[ComplaintSource] = None,
        sent: Optional[bool] = None
    ) -> List[ComplaintRecord]:
        """
        Filter records for an inbox view

        Args:
            source: Only records from this channel
            sent: True for the sent tab, False for the inbox tab, None for both

        Returns:
            Matching records, most recent first
        """
        result = []
        for record in self.records:
            if source is not None and record.source != source:
                continue
            if sent is not None and (record.status == ComplaintStatus.SENT) != sent:
                continue
            result.append(record)
        return result
