import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

from scorecard.errors import NotFoundError, ScorecardError
from scorecard.services.audit_log import EVENT_TYPES, AuditLogService
from scorecard.services.engine import ScoringEngine


def _dump(payload: object) -> None:
    print(json.dumps(payload, default=str, indent=2, ensure_ascii=False))


def cmd_leaderboard(engine: ScoringEngine, args: argparse.Namespace) -> None:
    tournament = engine.lifecycle.get_by_room_code(args.room_code)
    _dump([asdict(entry) for entry in engine.get_leaderboard(tournament.id)])


def cmd_stats(engine: ScoringEngine, args: argparse.Namespace) -> None:
    tournament = engine.lifecycle.get_by_room_code(args.room_code)
    _dump({"tournament": asdict(tournament), "stats": asdict(engine.get_aggregate_stats(tournament.id))})


def cmd_complete(engine: ScoringEngine, args: argparse.Namespace) -> None:
    tournament = engine.lifecycle.get_by_room_code(args.room_code)
    _dump(asdict(engine.complete_tournament(tournament.id)))


def cmd_recalculate(engine: ScoringEngine, args: argparse.Namespace) -> None:
    player = engine.directory.find_by_code(args.unique_code)
    if player is None:
        raise NotFoundError(f"Universal player {args.unique_code.upper()} not found.")
    _dump(asdict(engine.recalculate_handicap(player.id)))


def cmd_audit(engine: ScoringEngine, args: argparse.Namespace) -> None:
    audit_log = AuditLogService(engine.connection)
    if args.output:
        path = audit_log.export_txt(args.output, event_type=args.event_type, query=args.query)
        print(f"Audit log saved to {path}")
        return
    _dump([asdict(event) for event in audit_log.list_events(event_type=args.event_type, query=args.query)])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scorecard", description="Tournament scoring maintenance commands.")
    parser.add_argument("--db", type=Path, help="Path to the score database (defaults to settings).")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level.")
    commands = parser.add_subparsers(dest="command", required=True)

    leaderboard = commands.add_parser("leaderboard", help="Print the ranked standings of a tournament.")
    leaderboard.add_argument("room_code")
    leaderboard.set_defaults(handler=cmd_leaderboard)

    stats = commands.add_parser("stats", help="Print aggregate statistics of a tournament.")
    stats.add_argument("room_code")
    stats.set_defaults(handler=cmd_stats)

    complete = commands.add_parser("complete", help="Write standings to player history and archive.")
    complete.add_argument("room_code")
    complete.set_defaults(handler=cmd_complete)

    recalculate = commands.add_parser("recalculate", help="Recompute one player's handicap from history.")
    recalculate.add_argument("unique_code")
    recalculate.set_defaults(handler=cmd_recalculate)

    audit = commands.add_parser("audit", help="Print or export director actions from the audit log.")
    audit.add_argument("--type", dest="event_type", choices=EVENT_TYPES, help="Only this event type.")
    audit.add_argument("--query", default="", help="Substring to match in title or details.")
    audit.add_argument("--output", "-o", type=Path, help="Write a text export here instead of printing JSON.")
    audit.set_defaults(handler=cmd_audit)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    engine = ScoringEngine(db_path=args.db)
    try:
        args.handler(engine, args)
    except ScorecardError as exc:
        logging.getLogger("scorecard").error("%s", exc)
        return 1
    finally:
        engine.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
