"""
omni-ai command line.

    omni-ai chat "Why are checkout requests failing?" --thread inc-42
    omni-ai fork "Try the payments angle" --from inc-42
    omni-ai sessions list
    omni-ai replay capture.jsonl --format verbose
"""

import argparse
import logging
import sys

from omni_ai import __version__

from ..agent import AgentClient
from ..chat import ChatSession
from ..config import Settings
from ..exceptions import OmniError
from ..sessions import SessionStore
from .registry import registry
from .util import graceful_main


def create_chat(settings: Settings, allow_missing: bool = False) -> ChatSession | None:
    """
    Bind a ChatSession to the agent runtime.

    Without an API key this returns None when ``allow_missing`` is set and
    exits with status 1 otherwise.
    """
    try:
        client = AgentClient(settings=settings)
    except OmniError as e:
        if allow_missing:
            return None
        print(f"❌ {e.message}")
        print("💡 Set OMNI_AI_API_KEY (or ANTHROPIC_API_KEY) or pass --api-key")
        sys.exit(1)
    return ChatSession(client, SessionStore(settings.session_db), resource_id=settings.resource_id)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="omni-ai",
        description="omni-ai - investigation assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--api-key", help="Agent runtime API key (or set OMNI_AI_API_KEY)")
    parser.add_argument("--base-url", help="Agent runtime base URL (or set OMNI_AI_BASE_URL)")
    parser.add_argument("--resource", dest="global_resource", help="Resource (user) id")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    for command in registry.commands:
        command.add_arguments(
            subparsers.add_parser(command.name, aliases=command.aliases, help=command.description)
        )
    return parser


def _resolve_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with command-line overrides applied."""
    settings = Settings.from_env()
    if args.api_key:
        settings.api_key = args.api_key
    if args.base_url:
        settings.base_url = args.base_url
    if args.global_resource:
        settings.resource_id = args.global_resource
    return settings


def _real_main(argv: list[str]) -> int:
    registry.discover()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s"
        )

    if not args.command:
        parser.print_help()
        return 0
    command = registry.get(args.command)

    try:
        args.settings = _resolve_settings(args)
    except OmniError as e:
        print(f"❌ {e.message}")
        return 1

    chat = create_chat(args.settings, allow_missing=not command.requires_client)
    try:
        return command.execute(args, chat)
    except OmniError as e:
        print(f"❌ Command execution failed: {e.message}")
        return 1
    finally:
        if chat is not None:
            chat.store.close()
            chat.client.close()


def main() -> None:
    """Console script entry point."""
    raise SystemExit(graceful_main(_real_main, sys.argv[1:]))


if __name__ == "__main__":
    main()
