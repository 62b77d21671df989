"""Dashboard views and reports"""

import csv
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from .metrics import WorkflowMetrics, compute_dashboard_stats
from ..memory.models import ComplaintRecord
from ..memory.store import ComplaintStore


class Reporter:
    """Render store contents as text tables, reports and CSV"""

    def __init__(self, store: ComplaintStore, metrics: Optional[WorkflowMetrics] = None, reports_dir: str = 'reports'):
        """Initialize reporter"""
        self.store = store
        self.metrics = metrics or WorkflowMetrics()
        self.reports_dir = Path(reports_dir)
        logger.debug("Reporter initialized")

    def display_records(self, records: List[ComplaintRecord], title: str = "Complaints"):
        """Print a table of records"""
        if not records:
            print(f"{title}: no records found.")
            return

        print(f"{title} ({len(records)}):\n")

        headers = ["ID", "Subject", "Category", "Priority", "Status", "Source"]
        widths = {
            "ID": 10,
            "Subject": 40,
            "Category": 9,
            "Priority": 8,
            "Status": 13,
            "Source": 6
        }

        header_line = " | ".join(f"{h:<{widths[h]}}" for h in headers)
        print(header_line)
        print("-" * len(header_line))

        for record in records:
            subject = record.subject
            if len(subject) > widths["Subject"] - 1:
                subject = subject[:widths["Subject"] - 4] + "..."

            row = {
                "ID": record.short_id,
                "Subject": subject,
                "Category": record.category.value if record.category else "-",
                "Priority": record.priority.value if record.priority else "-",
                "Status": record.status.value,
                "Source": record.source.value
            }
            print(" | ".join(f"{row[h]:<{widths[h]}}" for h in headers))

        print("")

    def display_record(self, record: ComplaintRecord):
        """Print one record in full"""
        lines = [
            "=" * 80,
            f"{record.subject}",
            "=" * 80,
            f"ID:         {record.id}",
            f"From:       {record.customer_id} ({record.source.value})",
            f"Received:   {record.timestamp:%Y-%m-%d %H:%M}",
            f"Type:       {record.kind.value}",
            f"Status:     {record.status.value}",
        ]
        if record.order_id:
            lines.append(f"Order:      {record.order_id}")
        if record.location:
            lines.append(f"Location:   {record.location}")
        if record.is_classified:
            lines.extend([
                f"Category:   {record.category.value}",
                f"Sentiment:  {record.sentiment.value}",
                f"Priority:   {record.priority.value}",
                f"Confidence: {record.confidence_score or 0:.0%}",
                f"Review:     {'required' if record.requires_review else 'not required'}",
            ])
        lines.extend(["", "Complaint", "-" * 80, record.original_text])
        if record.summary:
            lines.extend(["", "Summary", "-" * 80, record.summary])
        if record.admin_response:
            lines.extend(["", "Dispatched response", "-" * 80, record.admin_response])
        elif record.formal_email_draft:
            lines.extend(["", "Draft response", "-" * 80, record.formal_email_draft])
        print("\n".join(lines))
        print("")

    def display_stats(self, records: Optional[List[ComplaintRecord]] = None):
        """Print dashboard statistics"""
        stats = compute_dashboard_stats(records if records is not None else self.store.all())

        print("Inbound Traffic")
        print("---------------")
        print(f"  Total Received: {stats['total']}")
        print(f"  Pending Action: {stats['pending']}")
        print(f"  Resolved:       {stats['solved']}")
        print(f"  Urgent Open:    {stats['urgent']}")
        print(f"  Resolution Rate: {stats['resolution_rate']:.1f}%")
        print("")

        if not stats['locations']:
            print("Regional Load: no data collected\n")
            return

        highest = stats['highest_location']
        lowest = stats['lowest_location']
        print("Regional Load")
        print("-------------")
        print(f"  Highest: {highest[0]} ({highest[1]})")
        print(f"  Lowest:  {lowest[0]} ({lowest[1]})")
        print("  Top circles:")
        for location, count in stats['top_circles']:
            print(f"    - {location}: {count}")
        print("")

    def generate_report(self) -> Dict[str, Any]:
        """Write a text summary and a CSV of all records to the reports directory"""
        records = self.store.all()
        generated_at = datetime.now()
        report = {
            'generated_at': generated_at.isoformat(),
            'stats': compute_dashboard_stats(records),
            'metrics': self.metrics.get_summary(),
            'records': [r.model_dump(mode='json') for r in records],
        }

        self.reports_dir.mkdir(parents=True, exist_ok=True)
        report_name = f"complaint_report_{generated_at:%Y%m%d_%H%M%S}"

        text_file = self.reports_dir / f"{report_name}.txt"
        with open(text_file, 'w', encoding='utf-8') as f:
            f.write(self._format_text_report(report))
        logger.info(f"Complaint report saved to {text_file}")

        csv_file = self.reports_dir / f"{report_name}.csv"
        self._save_csv_report(records, csv_file)

        report['text_file'] = str(text_file)
        report['csv_file'] = str(csv_file)
        return report

    def _format_text_report(self, report: Dict[str, Any]) -> str:
        """Format text report"""
        stats = report['stats']
        metrics = report['metrics']

        lines = [
            "=" * 80,
            "COMPLAINT DESK - ACTIVITY REPORT",
            "=" * 80,
            "",
            "SUMMARY",
            "-" * 80,
            f"Total Received: {stats['total']}",
            f"Pending Action: {stats['pending']}",
            f"Resolved: {stats['solved']}",
            f"Urgent Open: {stats['urgent']}",
            f"Resolution Rate: {stats['resolution_rate']:.1f}%",
            "",
            "BY LOCATION",
            "-" * 80,
        ]

        if stats['locations']:
            for location, count in stats['locations']:
                lines.append(f"  {location}: {count}")
        else:
            lines.append("  No location data")

        # Counters cover only the running process; a one-shot CLI report has none
        if self._has_activity(metrics):
            lines.extend([
                "",
                "THIS PROCESS",
                "-" * 80,
                f"Submissions: {metrics['submissions']}",
                f"Analyses: {metrics['analyses']} ({metrics['analysis_failures']} failed)",
                f"Drafts Created: {metrics['drafts_created']}",
                f"Drafts Edited: {metrics['drafts_edited']}",
                f"Dispatches: {metrics['dispatches']}",
                f"Inbox Syncs: {metrics['syncs']} ({metrics['synced_records']} new records)",
            ])

        if metrics['failures_by_component_reason']:
            lines.extend(["", "FAILURES", "-" * 80])
            for component, reasons in metrics['failures_by_component_reason'].items():
                lines.append(f"Component: {component.upper().replace('_', ' ')}")
                for reason, count in reasons.items():
                    lines.append(f"  - {reason}: {count}")

        lines.extend([
            "=" * 80,
            f"Report generated: {report['generated_at']}",
            "=" * 80
        ])
        return "\n".join(lines)

    @staticmethod
    def _has_activity(metrics: Dict[str, Any]) -> bool:
        return any(metrics[key] for key in ('submissions', 'analyses', 'drafts_edited', 'dispatches', 'syncs', 'errors'))

    def _save_csv_report(self, records: List[ComplaintRecord], csv_file: Path):
        """Save CSV report"""
        try:
            with open(csv_file, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                writer.writerow([
                    'ID', 'Received', 'Source', 'Customer', 'Subject', 'Category',
                    'Sentiment', 'Priority', 'Status', 'Location'
                ])
                for record in records:
                    writer.writerow([
                        record.id,
                        record.timestamp.isoformat(),
                        record.source.value,
                        record.customer_id,
                        record.subject,
                        record.category.value if record.category else '',
                        record.sentiment.value if record.sentiment else '',
                        record.priority.value if record.priority else '',
                        record.status.value,
                        record.location or '',
                    ])
            logger.info(f"CSV report saved to {csv_file}")
        except Exception as e:
            logger.error(f"Error saving CSV report: {e}")
