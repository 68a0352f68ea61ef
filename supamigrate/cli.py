"""Command-line interface for the Firebase to Supabase migration toolkit."""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .models.migration import ExportConfig, LoadConfig, MigrationConfig
from .services.function_scanner import FunctionScanner
from .orchestrator import FunctionMigrationOrchestrator, run_export, run_load

logger = logging.getLogger(__name__)


EXIT_OK = 0
EXIT_UNITS_FAILED = 1
EXIT_FATAL = 2


def _load_config_file(path: Optional[str]) -> Dict[str, Any]:
    """Read a JSON config file, or return an empty dict when none is given."""
    if not path:
        return {}
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _override(data: Dict[str, Any], args: argparse.Namespace, names: List[str]) -> Dict[str, Any]:
    """Apply command-line values that were actually given on top of file values."""
    for name in names:
        value = getattr(args, name, None)
        if value is not None:
            data[name] = value
    return data


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="supamigrate",
        description="Migrate Firebase Cloud Functions and Firestore data to Supabase",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Transpile functions
    functions_parser = subparsers.add_parser("functions", help="Convert Cloud Functions to Edge Functions")
    functions_parser.add_argument("--config", help="Path to JSON config file")
    source = functions_parser.add_mutually_exclusive_group()
    source.add_argument("--source", dest="source_dir", help="Local functions source directory")
    source.add_argument("--project", dest="firebase_project", help="Deployed Firebase project id")
    functions_parser.add_argument("--output", dest="output_dir", help="Output directory for Edge Functions")
    functions_parser.add_argument("--firebase-cli", dest="firebase_cli", help="firebase executable")

    # Scan one file
    scan_parser = subparsers.add_parser("scan", help="Print the functions recognized in one file")
    scan_parser.add_argument("file", help="Source file to scan")

    # Export Firestore
    export_parser = subparsers.add_parser("export", help="Export a Firestore collection to JSON")
    export_parser.add_argument("collection", nargs="?", help="Root collection name")
    export_parser.add_argument("--config", help="Path to JSON config file")
    export_parser.add_argument("--batch-size", dest="batch_size", type=int)
    export_parser.add_argument("--limit", type=int, help="Maximum root documents (0 = all)")
    export_parser.add_argument(
        "--include-subcollections",
        dest="include_subcollections",
        action="store_const",
        const=True,
        help="Walk nested collections",
    )
    export_parser.add_argument("--max-depth", dest="max_depth", type=int)
    export_parser.add_argument("--subcollection-limit", dest="subcollection_limit", type=int)
    export_parser.add_argument(
        "--subcollection-mode",
        dest="subcollection_mode",
        choices=["flatten", "nest"],
    )
    export_parser.add_argument("--output", dest="output_dir", help="Output directory for relation files")
    export_parser.add_argument("--credentials", dest="credentials_path", help="Service account JSON")
    export_parser.add_argument("--project", dest="project_id", help="Firebase project id")
    export_parser.add_argument("--hooks", dest="hooks_dir", help="Directory of document hook modules")

    # Load into Supabase
    load_parser = subparsers.add_parser("load", help="Load exported relations into Supabase")
    load_parser.add_argument("input_dir", nargs="?", help="Directory of relation files")
    load_parser.add_argument("--config", help="Path to JSON config file")
    load_parser.add_argument("--url", dest="supabase_url", help="Supabase project URL")
    load_parser.add_argument("--key", dest="service_role_key", help="Supabase service role key")
    load_parser.add_argument("--batch-size", dest="batch_size", type=int)
    load_parser.add_argument("--dry-run", dest="dry_run", action="store_const", const=True)
    load_parser.add_argument("--on-conflict", dest="on_conflict", help="Upsert conflict column")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.command == "functions":
        return run_functions(args)
    elif args.command == "scan":
        return run_scan(args)
    elif args.command == "export":
        return run_export_command(args)
    elif args.command == "load":
        return run_load_command(args)

    parser.print_help()
    return EXIT_FATAL


def run_functions(args) -> int:
    """Transpile a functions source into Edge Functions."""
    data = _override(
        _load_config_file(args.config),
        args,
        ["source_dir", "firebase_project", "output_dir", "firebase_cli"],
    )
    config = MigrationConfig.from_dict(data)

    report = FunctionMigrationOrchestrator(config).run()

    print("\n" + "=" * 60)
    print("FUNCTION MIGRATION COMPLETE" if not report.fatal else "FUNCTION MIGRATION ABORTED")
    print("=" * 60)
    print(f"Source: {report.source or '(none)'}")
    print(f"Total: {report.total}")
    print(f"Migrated: {report.migrated_count}")
    print(f"Failed: {report.failed_count}")
    print(f"Skipped: {report.skipped_count}")
    print(f"Warnings: {len(report.warnings)}")
    print(f"Errors: {len(report.errors)}")
    for unit in report.units:
        marker = " (needs review)" if unit.needs_review else ""
        print(f"  - {unit.name} [{unit.trigger_kind}] {unit.status.value}{marker}")
    if report.report_path:
        print(f"Report: {report.report_path}")

    if report.fatal:
        return EXIT_FATAL
    if report.failed_count:
        return EXIT_UNITS_FAILED
    return EXIT_OK


def run_scan(args) -> int:
    """Print the records recognized in a single file as JSON."""
    try:
        with open(args.file, encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Could not read {args.file}: {e}")
        return EXIT_FATAL

    records = FunctionScanner().scan(content, args.file)
    print(json.dumps([r.to_dict() for r in records], indent=2))
    return EXIT_OK


def run_export_command(args) -> int:
    """Export a Firestore collection."""
    data = _override(
        _load_config_file(args.config),
        args,
        [
            "collection",
            "batch_size",
            "limit",
            "include_subcollections",
            "max_depth",
            "subcollection_limit",
            "subcollection_mode",
            "output_dir",
            "credentials_path",
            "project_id",
            "hooks_dir",
        ],
    )
    try:
        config = ExportConfig.from_dict(data)
        result = run_export(config)
    except ValueError as e:
        logger.error(f"Export aborted: {e}")
        return EXIT_FATAL

    print(json.dumps(result.to_dict(), indent=2))
    return EXIT_UNITS_FAILED if result.errors else EXIT_OK


def run_load_command(args) -> int:
    """Load relation files into Supabase."""
    data = _override(
        _load_config_file(args.config),
        args,
        ["input_dir", "supabase_url", "service_role_key", "batch_size", "dry_run", "on_conflict"],
    )
    try:
        config = LoadConfig.from_dict(data)
        results = run_load(config)
    except ValueError as e:
        logger.error(f"Load aborted: {e}")
        return EXIT_FATAL

    print(json.dumps({table: r.to_dict() for table, r in results.items()}, indent=2))
    failed = any(r.total_failed or r.errors for r in results.values())
    return EXIT_UNITS_FAILED if failed else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
