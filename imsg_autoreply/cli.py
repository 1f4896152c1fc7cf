#!/usr/bin/env python3
"""imsg-autoreply - answer selected iMessage contacts while you're away.

Usage:
  imsg-autoreply run                         # Start the daemon
  imsg-autoreply run --dry-run               # Log replies instead of sending
  imsg-autoreply on                          # Allow auto-replies (create flag)
  imsg-autoreply off                         # Stop auto-replies (remove flag)
  imsg-autoreply status                      # Cursor, flag and DB state
  imsg-autoreply send +15551234567 "Hello"   # One-off send through Messages.app
  imsg-autoreply config --init               # Write an example config file
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def cmd_run(args, settings) -> int:
    from .actuator import DryRunActuator, OsascriptActuator
    from .gate import FlagFileGate
    from .loop import AutoResponder
    from .state import CursorStore
    from .storage import MessageSource, StoreUnavailable

    try:
        source = MessageSource.open(settings.messages_db)
    except StoreUnavailable as e:
        print(str(e), file=sys.stderr)
        return 1

    if args.dry_run:
        actuator = DryRunActuator()
    else:
        actuator = OsascriptActuator(
            osascript=settings.osascript,
            service_type=settings.service_type,
            timeout=settings.actuator_timeout,
        )

    responder = AutoResponder(
        source,
        CursorStore(settings.cursor_file),
        FlagFileGate(settings.active_flag),
        actuator,
        settings.replies,
        max_message_age=settings.max_message_age,
        throttle_window=settings.throttle_seconds,
        poll_interval=settings.poll_interval,
    )

    try:
        responder.run(max_iterations=1 if args.once else None)
    except KeyboardInterrupt:
        print("\nStopped.")
    finally:
        source.close()
    return 0


def cmd_status(args, settings) -> int:
    from .gate import FlagFileGate
    from .state import CursorStore
    from .storage import MessageSource, StoreUnavailable

    status = {
        "messages_db": str(settings.messages_db),
        "cursor_file": str(settings.cursor_file),
        "cursor": CursorStore(settings.cursor_file).load(),
        "active_flag": str(settings.active_flag),
        "active": FlagFileGate(settings.active_flag).is_active(),
        "contacts": sorted(settings.replies),
        "latest_id": None,
        "db_error": None,
    }
    try:
        source = MessageSource.open(settings.messages_db)
    except StoreUnavailable as e:
        status["db_error"] = str(e)
    else:
        status["latest_id"] = source.latest_id()
        source.close()

    if args.json:
        print(json.dumps(status, indent=2))
        return 0

    print("=== imsg-autoreply status ===\n")
    print(f"Auto-reply: {'ON' if status['active'] else 'OFF'}  ({status['active_flag']})")
    print(f"Cursor:     {status['cursor']}  ({status['cursor_file']})")
    if status["db_error"]:
        print(f"Messages:   unavailable - {status['db_error']}")
    else:
        print(f"Messages:   latest ROWID {status['latest_id']}  ({status['messages_db']})")
    contacts = ", ".join(status["contacts"]) or "(none configured)"
    print(f"Contacts:   {contacts}")
    return 0


def cmd_toggle(args, settings) -> int:
    from .gate import FlagFileGate

    gate = FlagFileGate(settings.active_flag)
    try:
        if args.command == "on":
            gate.enable()
        else:
            gate.disable()
    except OSError as e:
        print(f"✗ Could not update {settings.active_flag}: {e}")
        return 1
    print(f"✓ Auto-reply {'ON' if gate.is_active() else 'OFF'}")
    return 0


def cmd_send(args, settings) -> int:
    from .actuator import DryRunActuator, OsascriptActuator

    if args.dry_run:
        actuator = DryRunActuator()
    else:
        actuator = OsascriptActuator(
            osascript=settings.osascript,
            service_type=settings.service_type,
            timeout=settings.actuator_timeout,
        )
    if actuator.send(args.handle, args.text):
        print(f"✓ Sent to {args.handle}")
        return 0
    print(f"✗ Failed to send to {args.handle}")
    return 1


def cmd_config(args) -> int:
    from .config import find_config_file, init_config, show_config

    if args.path:
        config_file = find_config_file()
        if config_file:
            print(config_file)
        else:
            print("(no config file - using defaults)")
        return 0
    elif args.init:
        try:
            path = init_config(force=args.force)
            print(f"✓ Created config file: {path}")
            print(f"  Edit it to add the contacts to answer.")
            return 0
        except FileExistsError as e:
            print(f"✗ {e}")
            print("  Use --force to overwrite.")
            return 1
    show_config()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imsg-autoreply",
        description="Auto-reply to selected iMessage contacts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
EXAMPLES:
  imsg-autoreply config --init
  imsg-autoreply on
  imsg-autoreply run
  imsg-autoreply run --dry-run --log-level DEBUG
  imsg-autoreply off

Run 'imsg-autoreply <command> --help' for detailed command help.
"""
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, metavar="PATH", help="Use this config file instead of the default search")
    parser.add_argument("--log-level", metavar="LEVEL", help="Override log_level from config (DEBUG, INFO, ...)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run", help="Start the auto-reply daemon",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
NOTES:
  Replies only go out while the activation flag exists ('imsg-autoreply on').
  On first run the daemon starts at the newest message and never answers history.
"""
    )
    run_parser.add_argument("--dry-run", action="store_true", help="Log replies instead of sending")
    run_parser.add_argument("--once", action="store_true", help="Poll a single time and exit")

    status_parser = subparsers.add_parser("status", help="Show cursor, flag and database state")
    status_parser.add_argument("--json", action="store_true", help="Output JSON")

    subparsers.add_parser("on", help="Enable auto-replies (create the activation flag)")
    subparsers.add_parser("off", help="Disable auto-replies (remove the activation flag)")

    send_parser = subparsers.add_parser(
        "send", help="Send one message through Messages.app",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
EXAMPLE:
  imsg-autoreply send friend@example.com "Testing the responder"
"""
    )
    send_parser.add_argument("handle", help="Phone number or Apple ID")
    send_parser.add_argument("text", help="Message text")
    send_parser.add_argument("--dry-run", action="store_true", help="Print without sending")

    config_parser = subparsers.add_parser("config", help="Show or create the config file")
    config_parser.add_argument("--init", action="store_true", help="Write an example config file")
    config_parser.add_argument("--force", action="store_true", help="Overwrite with --init")
    config_parser.add_argument("--path", action="store_true", help="Print the active config file path")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    from .config import load_config, load_settings, use_config_file

    if args.config is not None:
        use_config_file(args.config.expanduser())

    if args.command == "config":
        return cmd_config(args)

    settings = load_settings(load_config())
    setup_logging(args.log_level or settings.log_level)

    if args.command == "run":
        return cmd_run(args, settings)
    elif args.command == "status":
        return cmd_status(args, settings)
    elif args.command in ("on", "off"):
        return cmd_toggle(args, settings)
    elif args.command == "send":
        return cmd_send(args, settings)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
