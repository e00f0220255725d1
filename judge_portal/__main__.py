"""
CLI entry point for the judge portal.

Parses arguments, validates config, and wires components.
"""

import argparse
import sys
from argparse import Namespace
from pathlib import Path

from prettytable import PrettyTable

from .config import Settings
from .controller import MatchController
from .exceptions import ConfigurationError, JudgePortalError
from .interfaces import BracketReporter, ScorecardStore
from .logging_config import get_logger, setup_logging
from .models import JUDGES_PER_MATCH, ScoringConfig
from .reporters.challonge_reporter import ChallongeReporter
from .reporters.recording_reporter import RecordingReporter
from .storage.json_storage import JSONFileScorecardStore
from .storage.memory_storage import InMemoryScorecardStore


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Judge Portal - three-judge match scoring for hosted brackets"
    )
    _ = parser.add_argument(
        "--data-dir",
        help="Directory for records.json/audit.jsonl (default: $JUDGE_PORTAL_DATA_DIR, in-memory if unset)"
    )
    _ = parser.add_argument(
        "--criteria",
        help="Scoring criteria as name:points pairs (default: aggression:3,damage:5,control:3)"
    )
    _ = parser.add_argument(
        "--ko-loser-score",
        type=int,
        help="Score given to the loser of a KO (default: 0)"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set logging level (default: INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    _ = serve.add_argument("--host", help="Bind address (default: 0.0.0.0)")
    _ = serve.add_argument("--port", type=int, help="Port (default: $PORT or 3001)")

    status = subparsers.add_parser("status", help="Show scoring status of stored matches")
    _ = status.add_argument("match_id", nargs="?", help="Show one match with every judge's card")

    reopen = subparsers.add_parser("reopen", help="Reopen a finalized match for re-scoring")
    _ = reopen.add_argument("match_id", help="Match to reopen")
    _ = reopen.add_argument(
        "--no-notify-host",
        action="store_true",
        help="Only clear local state; the bracket host already reopened the match"
    )
    _ = reopen.add_argument(
        "--keep-scorecards",
        action="store_true",
        help="Keep the judges' cards so they can edit instead of rescoring"
    )

    return parser.parse_args(argv)


def build_settings(args: Namespace) -> Settings:
    """Environment settings with command line overrides applied."""
    settings = Settings.from_env()
    if args.data_dir:
        settings.data_dir = Path(args.data_dir)
    if args.criteria or args.ko_loser_score is not None:
        ko_loser_score = args.ko_loser_score if args.ko_loser_score is not None else settings.scoring.ko_loser_score
        if args.criteria:
            settings.scoring = ScoringConfig.from_string(args.criteria, ko_loser_score=ko_loser_score)
        else:
            settings.scoring = ScoringConfig(criteria=settings.scoring.criteria, ko_loser_score=ko_loser_score)
    if getattr(args, "host", None):
        settings.host = args.host
    if getattr(args, "port", None):
        settings.port = args.port
    return settings


def wire_components(settings: Settings) -> tuple[MatchController, ChallongeReporter | None]:
    """Wire dependency injection components."""
    logger = get_logger("wire_components")

    store: ScorecardStore
    if settings.data_dir is not None:
        logger.info(f"Creating JSON file store in {settings.data_dir}")
        store = JSONFileScorecardStore(settings.data_dir / "records.json")
    else:
        logger.warning("No data directory configured, scorecards are kept in memory only")
        store = InMemoryScorecardStore()

    host_client: ChallongeReporter | None = None
    reporter: BracketReporter
    if settings.challonge_api_key:
        logger.info(f"Creating Challonge reporter for {settings.challonge_base_url}")
        host_client = ChallongeReporter(
            settings.challonge_api_key,
            base_url=settings.challonge_base_url,
            timeout=settings.request_timeout,
        )
        reporter = host_client
    else:
        logger.warning("Challonge API NOT configured - set CHALLONGE_API_KEY; results are only recorded locally")
        reporter = RecordingReporter()

    logger.info(
        f"Scoring: {[(c.criterion_id, c.points) for c in settings.scoring.criteria]}, "
        f"budget={settings.scoring.point_budget}, ko_loser_score={settings.scoring.ko_loser_score}"
    )
    return MatchController(store, reporter, settings.scoring), host_client


def cmd_serve(settings: Settings) -> int:
    """Start the HTTP server."""
    import uvicorn

    from .server import create_app

    controller, host_client = wire_components(settings)
    app = create_app(controller, host_client)
    get_logger("main").info(f"Starting judge portal on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")
    return 0


def print_match_list(controller: MatchController) -> None:
    table = PrettyTable()
    table.field_names = ["Match", "State", "Judges", "Winner", "Method", "Score"]
    table.align["Judges"] = "r"
    table.align["Score"] = "r"

    for match_id in sorted(controller.store.list_match_ids()):
        status = controller.get_status(match_id)
        result = status.result
        table.add_row([
            match_id,
            status.state.value,
            f"{status.judge_count}/{JUDGES_PER_MATCH}",
            result.winner_id if result else "",
            result.win_method if result else "",
            result.score_string if result else "",
        ])

    print(table)


def print_match_detail(controller: MatchController, match_id: str) -> None:
    detail = controller.get_status_detail(match_id)
    status = detail.status
    print(f"Match {match_id}: {detail.competitor_a_id} vs {detail.competitor_b_id} "
          f"(tournament {detail.tournament_id})")
    print(f"State: {status.state.value}, judges: {status.judge_count}/{JUDGES_PER_MATCH}")
    if status.result:
        print(f"Result: {status.result.winner_id} by {status.result.win_method} ({status.result.score_string})")

    criteria = controller.config.criterion_ids
    table = PrettyTable()
    table.field_names = ["Judge", "Method", *criteria, "A", "B", "Submitted"]
    for judge in detail.judges:
        if judge.method == "ko":
            table.add_row([judge.judge_id, f"KO {judge.ko_winner_id}", *["-"] * len(criteria), "-", "-", judge.submitted_at])
        else:
            shares = [f"{judge.shares_a[c]}-{judge.shares_b[c]}" for c in criteria]
            table.add_row([judge.judge_id, "points", *shares, judge.total_a, judge.total_b, judge.submitted_at])
    print(table)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = parse_args(argv)
    setup_logging(level=args.log_level, debug=args.debug)
    logger = get_logger("main")

    try:
        settings = build_settings(args)

        if args.command == "serve":
            sys.exit(cmd_serve(settings))

        if settings.data_dir is None:
            print("Error: status and reopen need --data-dir or JUDGE_PORTAL_DATA_DIR")
            sys.exit(1)

        controller, _ = wire_components(settings)
        if args.command == "status":
            if args.match_id:
                print_match_detail(controller, args.match_id)
            else:
                print_match_list(controller)
        elif args.command == "reopen":
            status = controller.reopen_match(
                args.match_id,
                notify_host=not args.no_notify_host,
                keep_scorecards=args.keep_scorecards,
            )
            print(f"Reopened match {args.match_id}: {status.judge_count} scorecard(s) kept")

    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"Error: {e}")
        sys.exit(1)
    except JudgePortalError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        print("\nInterrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
