#!/usr/bin/env python3
"""
QT Miner CLI

Command-line interface for Quality Threshold clustering of database tables.

Usage:
    python cli.py                                        # Interactive session
    python cli.py interactive                            # Interactive session
    python cli.py mine --table playtennis --radius 2     # Single run
    python cli.py mine --table playtennis --radius 2 --save out.dmp --json
    python cli.py load --file out.dmp [--table playtennis]
"""

import argparse
import sys
import uuid
from pathlib import Path
from typing import Callable, List, Optional

from qtminer.config.settings_loader import ConfigManager, Settings
from qtminer.core.qt_miner import QTMiner
from qtminer.data.dataset import Data
from qtminer.database.db_access import DbAccess
from qtminer.schemas.data_models import ErrorReport, RunReport, RunSource
from qtminer.storage.cluster_storage import build_output_path
from qtminer.utils.advanced_logging import LogContext, configure_logging, get_logger, log_exceptions
from qtminer.utils.error_handling import (
    ClusterDecodeError,
    ClusteringRadiusError,
    ConfigurationError,
    DatabaseConnectionError,
    DatabaseError,
    DatasetError,
    DistanceError,
    EmptyDatasetError,
    EmptySetError,
    NoValueError,
    QTMinerError,
)


logger = get_logger("qtminer.cli")

SEPARATOR = "-" * 40


def print_error(title: str, message: str) -> None:
    """Print an error block on stderr."""
    print(f"\n❌ {title}", file=sys.stderr)
    print(f"   {message}", file=sys.stderr)


def print_json_error(error: QTMinerError) -> None:
    report = ErrorReport(
        error_type=type(error).__name__,
        error_code=error.error_code,
        message=error.message,
        details=error.details,
    )
    print(report.model_dump_json(indent=2))


def report_clustering_error(error: QTMinerError, table: str, data: Optional[Data] = None) -> None:
    """Print the message matching a clustering or loading failure."""
    if isinstance(error, ClusteringRadiusError):
        rows = error.number_of_examples if error.number_of_examples is not None else (
            data.number_of_examples if data is not None else "All"
        )
        print(f"\n⚠️  Clustering radius error: {rows} rows in a single cluster!")
    elif isinstance(error, EmptyDatasetError):
        print_error("Empty dataset", f"Table '{table}' has no rows to cluster")
    elif isinstance(error, EmptySetError):
        print_error(f"Table '{table}' is empty", error.message)
    elif isinstance(error, NoValueError):
        print_error(f"Missing value in table '{table}'", error.message)
    elif isinstance(error, DatabaseError):
        print_error(f"Error while loading table '{table}'", error.message)
    elif isinstance(error, (ConfigurationError, DatasetError)):
        print_error("Invalid input", error.message)
    else:
        print_error("Clustering failed", error.message)


# =============================================================================
# Commands
# =============================================================================


def read_radius(ask: Callable[[str], str]) -> float:
    """Prompt until a number is entered."""
    while True:
        answer = ask("Clustering radius (> 0): ").strip()
        try:
            return float(answer)
        except ValueError:
            print(f"❌ '{answer}' is not a number")


def run_interactive(settings: Settings, ask: Optional[Callable[[str], str]] = None) -> int:
    """
    Ask for a table and a radius, cluster, print, repeat on request.

    A database connection failure ends the session.
    """
    ask = ask or input
    db = DbAccess(settings=settings.database)
    try:
        db.init_connection()
    except DatabaseConnectionError as e:
        print_error("Fatal database connection error", e.message)
        return 1

    exit_code = 0
    try:
        while True:
            print(SEPARATOR)
            table = ask("Table name: ").strip()
            data = None
            try:
                print(f"\n📥 Loading table '{table}'...")
                data = Data.from_table(table, db=db)
                print(f"\n--- Dataset loaded: {data.number_of_examples} distinct rows ---")
                print(data)

                radius = read_radius(ask)
                miner = QTMiner(
                    radius,
                    ordering=settings.clustering.ordering,
                    progress_log_interval=settings.clustering.progress_log_interval,
                )
                count = miner.compute(data)

                print("\n--- Clustering result ---")
                print(f"📦 Clusters found: {count}")
                print(miner.get_cluster_set().render(data))
            except DatabaseConnectionError as e:
                print_error("Fatal database connection error", e.message)
                return 1
            except QTMinerError as e:
                report_clustering_error(e, table, data)
                exit_code = 1

            print(f"\n{SEPARATOR}")
            again = ask("Run another clustering? (y/n) ").strip().lower()
            if not again.startswith("y"):
                break
    except (EOFError, KeyboardInterrupt):
        print()
    finally:
        db.close_connection()

    return exit_code


def run_mine(settings: Settings, table: str, radius: float, save: Optional[str], as_json: bool) -> int:
    """Cluster ``table`` once; optionally save and print a JSON report."""
    data = None
    db = DbAccess(settings=settings.database)
    try:
        db.init_connection()
        data = Data.from_table(table, db=db)
        miner = QTMiner(
            radius,
            ordering=settings.clustering.ordering,
            progress_log_interval=settings.clustering.progress_log_interval,
        )
        count = miner.compute(data)
    except QTMinerError as e:
        if as_json:
            print_json_error(e)
        elif isinstance(e, DatabaseConnectionError):
            print_error("Fatal database connection error", e.message)
        else:
            report_clustering_error(e, table, data)
        return 1
    finally:
        db.close_connection()

    cluster_set = miner.get_cluster_set()

    saved_path = None
    if save is not None:
        target = Path(save) if save else build_output_path(
            settings.storage.output_dir, table, radius, settings.storage.file_extension
        )
        try:
            saved_path = miner.save(target)
        except OSError as e:
            print_error(f"Cannot write '{target}'", str(e))
            return 1

    if as_json:
        report = RunReport.from_cluster_set(cluster_set, data=data, table=table, radius=radius)
        print(report.model_dump_json(indent=2))
        return 0

    print(f"📦 Clusters found: {count}")
    print(cluster_set.render(data))
    if saved_path is not None:
        print(f"💾 Saved to {saved_path}")
    return 0


def run_load(settings: Settings, file: str, table: Optional[str], as_json: bool) -> int:
    """Load a saved clustering; render it against ``table`` when given."""
    try:
        miner = QTMiner.load(file)
    except OSError as e:
        print_error(f"Cannot read '{file}'", str(e))
        return 1
    except ClusterDecodeError as e:
        if as_json:
            print_json_error(e)
        else:
            print_error(f"'{file}' is not a saved clustering", e.message)
        return 1

    cluster_set = miner.get_cluster_set()

    data = None
    if table:
        db = DbAccess(settings=settings.database)
        try:
            db.init_connection()
            data = Data.from_table(table, db=db)
        except QTMinerError as e:
            if as_json:
                print_json_error(e)
            else:
                report_clustering_error(e, table)
            return 1
        finally:
            db.close_connection()

    # Rows or bounds of the table may have changed since the save.
    try:
        if as_json:
            report = RunReport.from_cluster_set(
                cluster_set, data=data, table=table, radius=miner.radius, source=RunSource.LOADED
            )
            print(report.model_dump_json(indent=2))
            return 0
        rendered = cluster_set.render(data) if data is not None else cluster_set.summarize()
    except (IndexError, DistanceError) as e:
        if as_json:
            if not isinstance(e, QTMinerError):
                e = DistanceError(str(e), error_code="ROW_OUT_OF_RANGE", details={"table": table})
            print_json_error(e)
        else:
            print_error(f"Clusters do not match table '{table}'", str(e))
        return 1

    print(f"📂 Loaded {len(cluster_set)} clusters (radius {miner.radius}) from {file}")
    print(rendered)
    return 0


# =============================================================================
# Entry point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="QT Miner - Quality Threshold clustering of database tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to settings YAML")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("interactive", help="Interactive session (default)")

    mine = subparsers.add_parser("mine", help="Cluster a table once")
    mine.add_argument("--table", "-t", required=True, help="Source table")
    mine.add_argument("--radius", "-r", type=float, help="Clustering radius (> 0)")
    mine.add_argument(
        "--save",
        nargs="?",
        const="",
        help="Save the clusters (default path built from table and radius)",
    )
    mine.add_argument("--json", action="store_true", help="Print a JSON report")

    load = subparsers.add_parser("load", help="Print a saved clustering")
    load.add_argument("--file", "-f", required=True, help="Saved clustering")
    load.add_argument("--table", "-t", help="Table to render the members against")
    load.add_argument("--json", action="store_true", help="Print a JSON report")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.config:
            settings = ConfigManager.reload_config(args.config)
        else:
            settings = ConfigManager.load_config()
    except ConfigurationError as e:
        print_error("Invalid configuration", e.message)
        return 1

    configure_logging(
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        log_file=settings.logging.file,
        service_name=settings.service.name,
    )

    with LogContext.correlation_context(str(uuid.uuid4())), log_exceptions(logger, operation="cli"):
        command = args.command or "interactive"
        logger.debug("cli_command", command=command)

        if command == "interactive":
            return run_interactive(settings)

        if command == "mine":
            radius = args.radius if args.radius is not None else settings.clustering.default_radius
            if radius is None:
                print_error("Missing radius", "Pass --radius or set clustering.default_radius")
                return 1
            return run_mine(settings, args.table, radius, args.save, args.json)

        return run_load(settings, args.file, args.table, args.json)


if __name__ == "__main__":
    sys.exit(main())
