"""Workflow metrics and dashboard statistics"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List

from loguru import logger

from ..memory.models import ComplaintRecord, ComplaintStatus, PriorityLevel

UNSPECIFIED_LOCATION = 'Unspecified Circle'


class WorkflowMetrics:
    """Track in-process counters for the complaint workflow"""

    def __init__(self):
        """Initialize metrics tracker"""
        self.reset()
        logger.debug("Workflow metrics initialized")

    def reset(self):
        """Reset metrics"""
        self.metrics = {
            'submissions': 0,
            'analyses': 0,
            'analysis_failures': 0,
            'drafts_created': 0,
            'drafts_edited': 0,
            'dispatches': 0,
            'syncs': 0,
            'synced_records': 0,
            'errors': 0,
            'by_category': defaultdict(int),
            'failures': []  # Detailed failure log with reasons
        }

    def record_submission(self):
        self.metrics['submissions'] += 1

    def record_analysis(self, category: str):
        """Record a completed classification"""
        self.metrics['analyses'] += 1
        self.metrics['by_category'][category] += 1

    def record_draft_created(self):
        self.metrics['drafts_created'] += 1

    def record_draft_edited(self):
        self.metrics['drafts_edited'] += 1

    def record_dispatch(self):
        self.metrics['dispatches'] += 1

    def record_sync(self, new_records: int):
        self.metrics['syncs'] += 1
        self.metrics['synced_records'] += new_records

    def record_failure(
        self,
        failure_type: str,
        component: str,
        reason: str,
        context: Dict[str, Any] = None
    ):
        """
        Record a detailed failure

        Args:
            failure_type: Type of failure (analysis, dispatch, sync)
            component: Component that failed (analysis_client, mail_client)
            reason: Detailed reason for failure
            context: Additional context (record id, source, ...)
        """
        self.metrics['failures'].append({
            'timestamp': datetime.now().isoformat(),
            'type': failure_type,
            'component': component,
            'reason': reason,
            'context': context or {}
        })
        self.metrics['errors'] += 1
        if failure_type == 'analysis':
            self.metrics['analysis_failures'] += 1

    def get_summary(self) -> Dict[str, Any]:
        """Get metrics summary"""
        failures_by_component: Dict[str, Dict[str, int]] = {}
        for failure in self.metrics['failures']:
            reasons = failures_by_component.setdefault(failure['component'], {})
            reasons[failure['reason']] = reasons.get(failure['reason'], 0) + 1

        return {
            'submissions': self.metrics['submissions'],
            'analyses': self.metrics['analyses'],
            'analysis_failures': self.metrics['analysis_failures'],
            'drafts_created': self.metrics['drafts_created'],
            'drafts_edited': self.metrics['drafts_edited'],
            'dispatches': self.metrics['dispatches'],
            'syncs': self.metrics['syncs'],
            'synced_records': self.metrics['synced_records'],
            'errors': self.metrics['errors'],
            'by_category': dict(self.metrics['by_category']),
            'failures_by_component_reason': failures_by_component,
            'failures': list(self.metrics['failures'])
        }


def compute_dashboard_stats(records: Iterable[ComplaintRecord]) -> Dict[str, Any]:
    """
    Aggregate dashboard statistics over a set of records

    Returns:
        Dictionary with total/pending/solved/urgent counts, resolution rate and
        per-location counts (sorted by count, descending)
    """
    records = list(records)
    total = len(records)
    pending = sum(1 for r in records if r.status in (ComplaintStatus.PENDING, ComplaintStatus.DRAFTED))
    solved = sum(1 for r in records if r.status.is_terminal)
    urgent = sum(
        1 for r in records
        if r.priority == PriorityLevel.URGENT and r.status != ComplaintStatus.SENT
    )

    location_counts: Dict[str, int] = defaultdict(int)
    for record in records:
        location_counts[record.location or UNSPECIFIED_LOCATION] += 1
    # Ties keep first-seen order
    sorted_locations: List[tuple] = sorted(location_counts.items(), key=lambda item: item[1], reverse=True)

    return {
        'total': total,
        'pending': pending,
        'solved': solved,
        'urgent': urgent,
        'resolution_rate': (solved / total) * 100 if total > 0 else 0.0,
        'locations': sorted_locations,
        'highest_location': sorted_locations[0] if sorted_locations else None,
        'lowest_location': sorted_locations[-1] if sorted_locations else None,
        'top_circles': sorted_locations[:3],
    }
