"""Summary: Command-line interface for OmniaLink.

Importance: Provides a local entry point for connecting providers and trying AI features.
Alternatives: Use the HTTP API for every workflow.
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime

import uvicorn

from omnialink.app import build_services
from omnialink.config import AppConfig
from omnialink.models import PROVIDERS, RESOURCE_DIFFICULTIES, GenerationRequest


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="OmniaLink CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None)
    serve.add_argument("--port", type=int, default=None)

    auth_url = subparsers.add_parser("auth-url", help="Print a provider consent URL")
    auth_url.add_argument("provider", choices=PROVIDERS)

    subparsers.add_parser("status", help="Show provider connection status")

    disconnect = subparsers.add_parser("disconnect", help="Disconnect a provider")
    disconnect.add_argument("provider", choices=PROVIDERS)

    subparsers.add_parser("channels", help="List Slack channels")

    send_slack = subparsers.add_parser("send-slack", help="Post a Slack message")
    send_slack.add_argument("channel", type=str)
    send_slack.add_argument("text", type=str)

    summarize_channel = subparsers.add_parser("summarize-channel", help="Summarize a Slack channel")
    summarize_channel.add_argument("channel", type=str)
    summarize_channel.add_argument("--count", type=int, default=50)

    summarize_inbox = subparsers.add_parser("summarize-inbox", help="Summarize the Gmail inbox")
    summarize_inbox.add_argument("--max-results", type=int, default=10)

    send_email = subparsers.add_parser("send-email", help="Send an email through Gmail")
    send_email.add_argument("to", type=str)
    send_email.add_argument("subject", type=str)
    send_email.add_argument("body", type=str)
    send_email.add_argument("--in-reply-to", type=str, default=None)

    pull_calendar = subparsers.add_parser("pull-calendar", help="List upcoming Google Calendar events")
    pull_calendar.add_argument("--calendar-id", type=str, default="primary")
    pull_calendar.add_argument("--since", type=datetime.fromisoformat, default=None)

    suggest = subparsers.add_parser("suggest-resources", help="Suggest learning resources")
    suggest.add_argument("topic", type=str)
    suggest.add_argument("--type-hint", type=str, default="any")
    suggest.add_argument("--difficulty", choices=RESOURCE_DIFFICULTIES, default="beginner")

    draft = subparsers.add_parser("draft", help="Draft a message with AI")
    draft.add_argument("instruction", type=str)
    draft.add_argument("--context", type=str, default="")
    draft.add_argument("--tone", type=str, default="professional")
    draft.add_argument("--format", type=str, default="email")

    subparsers.add_parser("tip", help="Print a motivational tip")
    return parser


def run_cli(argv: list[str] | None = None) -> None:
    """Summary: Execute CLI commands based on arguments.

    Importance: Drives local workflows without a frontend.
    Alternatives: Invoke services via the HTTP API.
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    config = AppConfig.from_env()

    if args.command == "serve":
        uvicorn.run(
            "omnialink.api:app",
            host=args.host or config.api_host,
            port=args.port or config.api_port,
            log_level="info",
        )
        return

    services = build_services(config)

    if args.command == "auth-url":
        print(services.connections.build_authorization_url(services.user_id, args.provider))
        return

    if args.command == "status":
        for provider, details in services.connections.connection_status(services.user_id).items():
            if not details["connected"]:
                print(f"{provider}: not connected")
                continue
            print(
                f"{provider}: connected account={details['account_id']} "
                f"last_sync={details['last_sync'] or '-'}"
            )
        return

    if args.command == "disconnect":
        services.connections.disconnect(services.user_id, args.provider)
        print(f"Disconnected {args.provider}.")
        return

    if args.command == "channels":
        for channel in services.messaging.list_channels():
            print(f"{channel.id}\t{channel.kind}\t{channel.name}")
        return

    if args.command == "send-slack":
        result = services.messaging.send_slack_message(args.channel, args.text)
        print(f"Sent to {result.channel} at {result.ts}.")
        return

    if args.command == "summarize-channel":
        print(services.summaries.summarize_channel(args.channel, args.count))
        return

    if args.command == "summarize-inbox":
        print(services.summaries.summarize_inbox(args.max_results))
        return

    if args.command == "send-email":
        message_id = services.messaging.send_email(args.to, args.subject, args.body, args.in_reply_to)
        print(f"Sent message {message_id}.")
        return

    if args.command == "pull-calendar":
        for event in services.calendar_sync.sync_from_google(args.since, args.calendar_id):
            print(f"{event.start.isoformat()}\t{event.title}\t{event.external_id}")
        return

    if args.command == "suggest-resources":
        request = GenerationRequest(
            topic=args.topic, type_hint=args.type_hint, difficulty=args.difficulty
        )
        for resource in services.resources.generate(request):
            print(f"[{resource.type}/{resource.category}] {resource.title} - {resource.url}")
        return

    if args.command == "draft":
        print(services.coach.draft_message(args.instruction, args.context, args.tone, args.format))
        return

    if args.command == "tip":
        print(services.coach.motivational_tip())
        return


if __name__ == "__main__":
    run_cli()
