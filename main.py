import sys
import argparse
from datetime import date
from typing import List, Optional

# --- Settings/Logging ---
from title_ledger.config.settings import settings
from title_ledger.logging.setup import setup_logging

from loguru import logger

from title_ledger.engine.ledger_engine import LedgerEngine
from title_ledger.errors import LedgerError, PersistenceError
from title_ledger.storage.json_store import JsonFileStore

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="title-ledger", description="Track a championship title lineage."
    )
    parser.add_argument(
        "--data-file", default=None, help=f"Ledger file (default: {settings.data_file})"
    )
    commands = parser.add_subparsers(dest="command")

    commands.add_parser("show", help="Show the holder, standings and recent matches.")

    add_team = commands.add_parser("add-team", help="Add a team.")
    add_team.add_argument("name")
    add_team.add_argument(
        "--holder", action="store_true", help="Make the new team the title holder."
    )

    record = commands.add_parser("record", help="Record a match result.")
    record.add_argument("home_id", type=int)
    record.add_argument("away_id", type=int)
    record.add_argument("home_score", type=int)
    record.add_argument("away_score", type=int)
    record.add_argument(
        "--date", default=None, help="Match date, YYYY-MM-DD (default: today)."
    )

    edit_match = commands.add_parser("edit-match", help="Change a recorded match.")
    edit_match.add_argument("match_id", type=int)
    edit_match.add_argument("home_id", type=int)
    edit_match.add_argument("away_id", type=int)
    edit_match.add_argument("home_score", type=int)
    edit_match.add_argument("away_score", type=int)
    edit_match.add_argument(
        "--date", default=None, help="Match date, YYYY-MM-DD (default: keep it)."
    )

    reverse_match = commands.add_parser(
        "reverse-match", help="Undo a match's effects but keep it in the log."
    )
    reverse_match.add_argument("match_id", type=int)

    rename_team = commands.add_parser("rename-team", help="Rename a team.")
    rename_team.add_argument("team_id", type=int)
    rename_team.add_argument("name")

    delete_match = commands.add_parser("delete-match", help="Delete a match.")
    delete_match.add_argument("match_id", type=int)

    delete_team = commands.add_parser(
        "delete-team", help="Delete a team and all of its matches."
    )
    delete_team.add_argument("team_id", type=int)

    commands.add_parser("reset", help="Remove every team and match.")
    return parser


def team_name(engine: LedgerEngine, team_id: Optional[int]) -> str:
    """Display name for a team id, "-" when the id is empty or unknown."""
    team = engine.ledger.find_team(team_id)
    return team.name if team is not None else "-"


def render(engine: LedgerEngine) -> None:
    """Prints the current holder, the team standings and the latest matches."""
    ledger = engine.ledger

    holder = engine.holder()
    if holder is not None and holder.current_reign is not None:
        since = holder.current_reign.start.date().isoformat()
        console.print(
            Panel(
                f"[bold]{holder.name}[/bold]\nHolding since {since} "
                f"({engine.holder_days()} days)",
                title="Current holder",
            )
        )
    else:
        console.print(Panel("No current holder", title="Current holder"))

    standings = Table(title="Teams")
    for column in ("Id", "Team", "Record", "Streak", "Best W", "Worst L", "Longest reign"):
        standings.add_column(column)
    for team in ledger.teams:
        standings.add_row(
            str(team.id),
            f"{team.name} 🏆" if team.is_holder else team.name,
            team.record,
            team.streaks.current.token or "-",
            str(team.streaks.longest_win),
            str(team.streaks.longest_loss),
            f"{team.longest_reign_days} days" if team.reigns else "-",
        )
    console.print(standings)

    recent = Table(title="Recent matches")
    for column in ("Id", "Date", "Match", "Score", "Holder"):
        recent.add_column(column)
    for match in engine.matches_by_date(limit=settings.recent_matches_limit):
        home = team_name(engine, match.home_id)
        away = team_name(engine, match.away_id)
        if match.reversed:
            result = "Reversed"
        elif match.is_draw:
            result = "Draw"
        else:
            result = f"{team_name(engine, match.winner_id)} won"
        champion = team_name(engine, match.post_match_holder)
        if match.holder_changed and not match.reversed:
            champion = f"{champion} 👑"
        recent.add_row(
            str(match.id),
            match.date.isoformat(),
            f"{home} vs {away}",
            f"{match.home_score}-{match.away_score} ({result})",
            champion,
        )
    console.print(recent)


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    store = JsonFileStore(args.data_file or settings.data_file)
    try:
        engine = LedgerEngine.open(store)
        command = args.command or "show"

        if command == "add-team":
            team = engine.create_team(args.name, mark_as_holder=args.holder)
            console.print(f"Added [bold]{team.name}[/bold] (id {team.id}).")
        elif command == "record":
            match_date = date.fromisoformat(args.date) if args.date else date.today()
            match = engine.record_match(
                args.home_id, args.away_id, match_date, args.home_score, args.away_score
            )
            console.print(f"Recorded match {match.id}.")
        elif command == "edit-match":
            match_date = (
                date.fromisoformat(args.date)
                if args.date
                else engine.get_match(args.match_id).date
            )
            match = engine.edit_match(
                args.match_id,
                args.home_id,
                args.away_id,
                match_date,
                args.home_score,
                args.away_score,
            )
            console.print(f"Edited match {match.id}.")
        elif command == "reverse-match":
            engine.reverse_match(args.match_id)
            console.print(f"Reversed match {args.match_id}.")
        elif command == "rename-team":
            team = engine.rename_team(args.team_id, args.name)
            console.print(f"Team {team.id} is now [bold]{team.name}[/bold].")
        elif command == "delete-match":
            engine.delete_match(args.match_id)
            console.print(f"Deleted match {args.match_id}.")
        elif command == "delete-team":
            engine.delete_team(args.team_id)
            console.print(f"Deleted team {args.team_id}.")
        elif command == "reset":
            engine.reset()
            console.print("All data has been reset.")

        render(engine)
        return 0
    except PersistenceError as e:
        logger.error(f"Storage error: {e}")
        console.print(f"[red]Storage error:[/red] {e}")
        return 2
    except LedgerError as e:
        console.print(f"[red]{e}[/red]")
        return 1
    except ValueError as e:
        console.print(f"[red]Invalid input:[/red] {e}")
        return 1


def main() -> None:
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        sys.exit(0)


if __name__ == "__main__":
    main()
