"""CLI entry point for aideplus."""

from __future__ import annotations

import argparse
import asyncio
import sys

from aideplus.app import AidePlusApp
from aideplus.config import AppConfig, load_config
from aideplus.errors import AidePlusError
from aideplus.log import setup_logging
from aideplus.ui.terminal import TerminalView

_EXIT_COMMANDS = {"/quit", "/exit"}

_CHAT_HELP = """Commandes :
  /new            nouvelle conversation
  /history        lister vos conversations
  /open <id>      reprendre une conversation
  /usage          voir votre consommation
  /quit           quitter
"""


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-c", "--config", default="config.yaml", help="Path to config file")
    parser.add_argument("-e", "--env", default=".env", help="Path to .env file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aideplus",
        description="AIDE+ assistant client: chat about French aid programs and procedures",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _add_config_args(subparsers.add_parser("chat", help="Start an interactive chat"))
    _add_config_args(subparsers.add_parser("conversations", help="List your conversations"))

    history_parser = subparsers.add_parser("history", help="Show the messages of a conversation")
    history_parser.add_argument("conversation_id")
    _add_config_args(history_parser)

    delete_parser = subparsers.add_parser("delete", help="Delete a conversation")
    delete_parser.add_argument("conversation_id")
    _add_config_args(delete_parser)

    feedback_parser = subparsers.add_parser("feedback", help="Rate an assistant message (1-5)")
    feedback_parser.add_argument("message_id")
    feedback_parser.add_argument("rating", type=int, choices=range(1, 6))
    feedback_parser.add_argument("--comment", default=None)
    _add_config_args(feedback_parser)

    _add_config_args(subparsers.add_parser("usage", help="Show AI usage for the current period"))
    _add_config_args(subparsers.add_parser("config-check", help="Validate configuration"))
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.command is None:
        # Default to chat
        args.command = "chat"
        args.config = "config.yaml"
        args.env = ".env"

    config = _load(args.config, args.env)
    if args.command == "config-check":
        _check_config(args.config, config)
        return

    setup_logging(config.log_level, config.log_format)
    try:
        asyncio.run(_dispatch(args, config))
    except AidePlusError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


def _load(config_path: str, env_path: str) -> AppConfig:
    try:
        return load_config(config_path, env_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Copy config.example.yaml to config.yaml and set AIDEPLUS_ACCESS_TOKEN", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


def _check_config(config_path: str, config: AppConfig) -> None:
    """Print a summary of a valid configuration."""
    print(f"Configuration valid: {config_path}")
    print(f"  API       : {config.api.base_url}{config.api.prefix}")
    print(f"  Timeout   : {config.api.timeout}s")
    print(f"  Token     : {'set' if config.auth.access_token else '(missing)'}")
    print(f"  Max length: {config.chat.max_message_length} characters")
    print(f"  Log level : {config.log_level} ({config.log_format})")


async def _dispatch(args: argparse.Namespace, config: AppConfig) -> None:
    view = TerminalView()
    async with AidePlusApp(config, view) as app:
        match args.command:
            case "chat":
                await _chat_loop(app)
            case "conversations":
                await app.chat.load_conversations()
            case "history":
                await app.chat.open_conversation(args.conversation_id)
            case "delete":
                await app.chat_api.delete_conversation(args.conversation_id)
                print(f"Conversation {args.conversation_id} supprimée.")
            case "usage":
                usage = await app.chat_api.get_usage()
                print(f"Abonnement : {usage.tier}")
                print(f"Messages   : {usage.used}/{usage.limit} ({usage.remaining} restants)")
            case "feedback":
                await app.chat.submit_feedback(args.message_id, args.rating, args.comment)


async def _read_line(prompt: str) -> str | None:
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


async def _chat_loop(app: AidePlusApp) -> None:
    """Interactive REPL. Each line is one turn; replies stream to stdout."""
    controller = app.chat
    controller.start_new_chat()
    print(_CHAT_HELP)
    while True:
        line = await _read_line("Vous> ")
        if line is None:
            break
        text = line.strip()
        if not text:
            continue
        if text in _EXIT_COMMANDS:
            break
        try:
            if text == "/new":
                controller.start_new_chat()
            elif text == "/history":
                await controller.load_conversations()
            elif text.startswith("/open "):
                await controller.open_conversation(text[6:].strip())
            elif text == "/usage":
                usage = await app.chat_api.get_usage()
                print(f"{usage.used}/{usage.limit} messages ({usage.tier})")
            else:
                await controller.send(text)
        except AidePlusError as e:
            # REST helpers raise; the chat session stays usable
            print(f"! {e}")


if __name__ == "__main__":
    main()
