#!/usr/bin/env python3
"""Main entry point for the postal complaint desk"""

import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from postdesk.analysis.base import BaseAnalysisClient, ChatTurn
from postdesk.analysis.gemini_client import GeminiAnalysisClient
from postdesk.analysis.prompts import CHAT_FALLBACK_REPLY, CHAT_GREETING
from postdesk.analytics.metrics import WorkflowMetrics
from postdesk.analytics.reporter import Reporter
from postdesk.auth import authenticate
from postdesk.config import AppConfig
from postdesk.errors import AnalysisError, WorkflowError
from postdesk.mail.base import BaseMailClient
from postdesk.mail.inbox_client import SimulatedInboxClient
from postdesk.memory.models import ComplaintSource, UserRole
from postdesk.memory.session import LANGUAGE_NAMES, PreferenceStore, SessionStore
from postdesk.memory.storage import LocalStorage
from postdesk.memory.store import ComplaintStore
from postdesk.tracking.orders import orders_for_customer
from postdesk.workflow.controller import ComplaintLifecycleController
from postdesk.workflow.stages import ProcessingStage

LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"


def configure_logging(debug: bool = False):
    """Console sink plus rotating JSON file sink"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "INFO", format=LOG_FORMAT)
    logger.add("logs/postdesk_json_{time}.log", rotation="1 day", retention="7 days", level="DEBUG", serialize=True)
    if debug:
        logger.debug("DEBUG mode enabled (verbose logging active)")


@dataclass
class DeskContext:
    """Components wired together for one CLI invocation"""
    config: AppConfig
    store: ComplaintStore
    sessions: SessionStore
    preferences: PreferenceStore
    analysis_client: BaseAnalysisClient
    mail_client: BaseMailClient
    metrics: WorkflowMetrics
    controller: ComplaintLifecycleController
    reporter: Reporter


def build_context(
    config: AppConfig,
    analysis_client: Optional[BaseAnalysisClient] = None,
    mail_client: Optional[BaseMailClient] = None
) -> DeskContext:
    """Construct stores, clients and the controller from settings"""
    storage = LocalStorage(config.state_file)
    store = ComplaintStore(storage)
    sessions = SessionStore(storage)
    preferences = PreferenceStore(storage)
    metrics = WorkflowMetrics()
    analysis_client = analysis_client or GeminiAnalysisClient(config)
    mail_client = mail_client or SimulatedInboxClient(delay_scale=config.mail_delay_scale)

    controller = ComplaintLifecycleController(
        store=store,
        sessions=sessions,
        preferences=preferences,
        analysis_client=analysis_client,
        mail_client=mail_client,
        metrics=metrics,
        stage_delay_scale=config.stage_delay_scale,
        portal_region=config.portal_region,
    )
    reporter = Reporter(store, metrics, reports_dir=config.reports_dir)
    return DeskContext(
        config=config,
        store=store,
        sessions=sessions,
        preferences=preferences,
        analysis_client=analysis_client,
        mail_client=mail_client,
        metrics=metrics,
        controller=controller,
        reporter=reporter,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Postal complaint desk')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode (verbose logging)')
    parser.add_argument('--state-file', type=str, help='Override the local state file')
    sub = parser.add_subparsers(dest='command', required=True)

    login = sub.add_parser('login', help='Log in as a citizen or an official')
    login.add_argument('--role', choices=[r.value for r in UserRole], default=UserRole.CITIZEN.value)
    login.add_argument('--id', dest='identity', required=True, help='10-digit citizen id or official employee id')
    login.add_argument('--password', required=True)

    sub.add_parser('logout', help='End the current session')
    sub.add_parser('whoami', help='Show the current session')

    submit = sub.add_parser('submit', help='Submit a complaint or feedback (citizen)')
    submit.add_argument('--subject', required=True)
    submit.add_argument('--text', required=True)
    submit.add_argument('--kind', choices=['Complaint', 'Feedback'], default='Complaint')
    submit.add_argument('--order', type=str, help='Linked order id (see `orders`)')

    listing = sub.add_parser('list', help='List complaints visible to the current session')
    listing.add_argument('--source', choices=[s.value for s in ComplaintSource], help='Channel filter (official)')
    listing.add_argument('--tab', choices=['inbox', 'sent', 'all'], default='inbox', help='Status tab (official)')

    select = sub.add_parser('select', help='Open a record, analyzing it if needed (official)')
    select.add_argument('record_id')
    select.add_argument('--reanalyze', action='store_true', help='Re-run analysis and replace the current draft')

    edit = sub.add_parser('edit', help='Replace a record draft (official)')
    edit.add_argument('record_id')
    edit_source = edit.add_mutually_exclusive_group(required=True)
    edit_source.add_argument('--text', type=str)
    edit_source.add_argument('--file', type=str, help='Read the new draft from a file')

    dispatch = sub.add_parser('dispatch', help='Send a record response (official)')
    dispatch.add_argument('record_id')

    sub.add_parser('sync', help='Pull new complaints from the external inbox (official)')
    sub.add_parser('stats', help='Show dashboard statistics')
    sub.add_parser('report', help='Write a text and CSV report')
    sub.add_parser('orders', help='Show your tracked orders (citizen)')

    prefs = sub.add_parser('prefs', help='Show or change display preferences')
    prefs.add_argument('--lang', choices=sorted(LANGUAGE_NAMES), help='Language for drafted replies')
    prefs.add_argument('--scale', type=int, help='Display scale in percent')

    sub.add_parser('chat', help='Talk to the postal assistant')
    return parser


def resolve_record_id(ctx: DeskContext, record_id: str) -> str:
    """Accept a full id or an unambiguous prefix"""
    if ctx.store.contains(record_id):
        return record_id
    matches = [r.id for r in ctx.store.all() if r.id.startswith(record_id)]
    if len(matches) == 1:
        return matches[0]
    return record_id


async def run_command(ctx: DeskContext, args: argparse.Namespace) -> int:
    """Execute one parsed command"""
    controller = ctx.controller

    if args.command == 'login':
        session = authenticate(UserRole(args.role), args.identity, args.password, ctx.config)
        ctx.sessions.login(session)
        print(f"Logged in as {session.name} ({session.identity})")
        return 0

    if args.command == 'logout':
        ctx.sessions.logout()
        print("Logged out")
        return 0

    if args.command == 'whoami':
        if ctx.sessions.current is None:
            print("Not logged in")
        else:
            current = ctx.sessions.current
            print(f"{current.name} ({current.identity}, {current.role.value})")
        return 0

    if args.command == 'submit':
        record = await controller.submit_portal_complaint(
            text=args.text,
            subject=args.subject,
            kind=args.kind,
            order_id=args.order,
        )
        print(f"Submitted {record.kind.value.lower()} {record.short_id}")
        if record.ai_response:
            print("\nInstant response\n----------------")
            print(record.ai_response)
        else:
            print("Your submission has been recorded and will be reviewed by an official.")
        return 0

    if args.command == 'list':
        source = ComplaintSource(args.source) if args.source else None
        sent = {'inbox': False, 'sent': True, 'all': None}[args.tab]
        records = controller.visible_records(source=source, sent=sent)
        ctx.reporter.display_records(records, title=f"Complaints [{args.tab}]")
        return 0

    if args.command == 'select':
        record_id = resolve_record_id(ctx, args.record_id)

        def show_stage(stage: ProcessingStage):
            print(f"  [{int(stage)}/{len(ProcessingStage) - 1}] {stage.label}")

        record = await controller.select_record(record_id, on_stage=show_stage, force=args.reanalyze)
        ctx.reporter.display_record(record)
        return 0

    if args.command == 'edit':
        record_id = resolve_record_id(ctx, args.record_id)
        if args.file:
            with open(args.file, 'r', encoding='utf-8') as f:
                new_text = f.read()
        else:
            new_text = args.text
        controller.edit_draft(record_id, new_text)
        record = controller.commit_edit(record_id)
        print(f"Draft for {record.short_id} updated")
        return 0

    if args.command == 'dispatch':
        record_id = resolve_record_id(ctx, args.record_id)
        record = await controller.dispatch(record_id)
        print(f"Response for {record.short_id} dispatched to {record.customer_id}")
        return 0

    if args.command == 'sync':
        new_records = await controller.sync_external_source()
        print(f"{len(new_records)} new complaint(s) synced")
        if new_records:
            ctx.reporter.display_records(new_records, title="New from inbox")
        return 0

    if args.command == 'stats':
        session = ctx.sessions.require()
        records = ctx.store.all() if session.is_official else controller.visible_records(sent=None)
        ctx.reporter.display_stats(records)
        return 0

    if args.command == 'report':
        ctx.sessions.require(UserRole.OFFICIAL)
        report = ctx.reporter.generate_report()
        print(f"Report written to {report['text_file']} and {report['csv_file']}")
        return 0

    if args.command == 'orders':
        session = ctx.sessions.require(UserRole.CITIZEN)
        for order in orders_for_customer(session.identity):
            print(f"{order.id:<10} {order.tracking_id:<14} {order.origin} -> {order.destination} "
                  f"[{order.status}, {order.estimated_delivery}]")
        return 0

    if args.command == 'prefs':
        if args.lang:
            ctx.preferences.language = args.lang
        if args.scale is not None:
            ctx.preferences.scale = args.scale
        print(f"Language: {ctx.preferences.language_name} | Scale: {ctx.preferences.scale}%")
        return 0

    if args.command == 'chat':
        await chat_loop(ctx.analysis_client)
        return 0

    logger.error(f"Unknown command: {args.command}")
    return 1


async def chat_loop(client: BaseAnalysisClient):
    """Interactive assistant conversation; type 'exit' to leave"""
    history: List[ChatTurn] = [ChatTurn(role='model', text=CHAT_GREETING)]
    print(CHAT_GREETING)
    while True:
        try:
            message = input("> ").strip()
        except EOFError:
            break
        if message.lower() in ('exit', 'quit'):
            break
        if not message:
            continue

        try:
            reply = await client.chat(message, history)
        except AnalysisError:
            reply = CHAT_FALLBACK_REPLY
        history.append(ChatTurn(role='user', text=message))
        history.append(ChatTurn(role='model', text=reply))
        print(reply)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    configure_logging(debug=args.debug)

    config = AppConfig.from_env()
    if args.state_file:
        config.state_file = args.state_file

    try:
        ctx = build_context(config)
        return await run_command(ctx, args)
    except WorkflowError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
