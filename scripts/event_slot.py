#!/usr/bin/env python3
"""Export or import a user's stored calendar events as a JSON file."""
import argparse
import json
import os
import sys
from pathlib import Path

os.environ.setdefault("BOOTSTRAP_JOBS_ON_IMPORT", "0")
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import app, clock  # noqa: E402
from backend.errors import StorageParseError  # noqa: E402
from backend.event_store import EVENTS_KEY, decode_events, encode_events  # noqa: E402
from backend.slot_storage import SlotStorage  # noqa: E402
from models import User  # noqa: E402


def find_user(email: str) -> User:
    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user:
        raise SystemExit(f"No user with email {email}")
    return user


def export_events(user: User, output) -> int:
    raw = SlotStorage(user.id).get(EVENTS_KEY) or "[]"
    try:
        events = decode_events(raw, clock.tz)
    except StorageParseError as exc:
        raise SystemExit(f"Stored events for {user.email} are unreadable: {exc}")
    json.dump([event.to_dict() for event in events], output, indent=2)
    output.write("\n")
    return len(events)


def import_events(user: User, raw: str, replace: bool) -> int:
    try:
        incoming = decode_events(raw, clock.tz)
    except StorageParseError as exc:
        raise SystemExit(f"Input is not a valid event export: {exc}")

    storage = SlotStorage(user.id)
    events = []
    if not replace:
        existing_raw = storage.get(EVENTS_KEY)
        if existing_raw:
            try:
                events = decode_events(existing_raw, clock.tz)
            except StorageParseError as exc:
                raise SystemExit(
                    f"Stored events for {user.email} are unreadable ({exc}); rerun with --replace to overwrite them"
                )
    known = {event.id for event in events}
    events.extend(event for event in incoming if event.id not in known)
    storage.set(EVENTS_KEY, encode_events(events))
    return len(events)


def main() -> int:
    parser = argparse.ArgumentParser(description="Export or import a user's calendar events.")
    sub = parser.add_subparsers(dest="command", required=True)

    export_parser = sub.add_parser("export", help="Write the user's events as JSON.")
    export_parser.add_argument("--email", required=True, help="Account email.")
    export_parser.add_argument("--output", help="Output file (default: stdout).")

    import_parser = sub.add_parser("import", help="Load events from a JSON export.")
    import_parser.add_argument("--email", required=True, help="Account email.")
    import_parser.add_argument("--input", required=True, help="JSON file to read.")
    import_parser.add_argument(
        "--replace",
        action="store_true",
        help="Replace stored events instead of merging by id.",
    )
    args = parser.parse_args()

    with app.app_context():
        user = find_user(args.email)
        if args.command == "export":
            if args.output:
                with open(args.output, "w", encoding="utf-8") as fh:
                    count = export_events(user, fh)
                print(f"Exported {count} events to {args.output}")
            else:
                export_events(user, sys.stdout)
            return 0

        raw = Path(args.input).read_text(encoding="utf-8")
        count = import_events(user, raw, args.replace)
        print(f"Stored {count} events for {user.email}; reminders are armed on next start.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
