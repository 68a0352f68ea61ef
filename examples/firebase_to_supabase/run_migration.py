#!/usr/bin/env python3
"""
Example: Firebase project to Supabase

Transpiles a Firebase functions directory into Supabase Edge Functions and,
optionally, exports a Firestore collection tree and loads it into Supabase.

Usage:
    # Demo with bundled sample functions (no Firebase or Supabase needed)
    python run_migration.py --demo

    # Transpile a local functions directory
    python run_migration.py --source ../my-app/functions

    # Also export users (with subcollections) and load them, simulated
    python run_migration.py --source ../my-app/functions --collection users --dry-run
"""

import argparse
import logging
import os
import sys
import tempfile
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from supamigrate.models.migration import ExportConfig, LoadConfig, MigrationConfig
from supamigrate.orchestrator import FunctionMigrationOrchestrator, run_export, run_load

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('migration.log')
    ]
)
logger = logging.getLogger(__name__)


SAMPLE_FUNCTIONS = """\
const functions = require('firebase-functions');
const admin = require('firebase-admin');

exports.getUser = functions.https.onRequest(async (req, res) => {
  const snapshot = await admin.firestore().collection('users').doc(req.query.id).get();
  res.status(200).json({ user: snapshot.data() });
});

exports.onOrderCreated = functions.firestore
  .document('users/{userId}/orders/{orderId}')
  .onCreate(async (snap, context) => {
    await admin.messaging().send({ topic: 'orders', data: { id: context.params.orderId } });
  });

exports.nightlyCleanup = functions.pubsub.schedule('every day 02:30').onRun(async (context) => {
  await admin.firestore().collection('sessions').where('expired', '==', true).get();
});
"""


def migrate_functions(source_dir: str, output_dir: str):
    """Transpile a functions directory."""
    logger.info("=" * 60)
    logger.info("MIGRATING FUNCTIONS")
    logger.info("=" * 60)
    logger.info(f"Source: {source_dir}")
    logger.info(f"Output: {output_dir}")

    config = MigrationConfig(source_dir=source_dir, output_dir=output_dir)
    report = FunctionMigrationOrchestrator(config).run()

    logger.info("=" * 60)
    logger.info("FUNCTION MIGRATION COMPLETE")
    logger.info("=" * 60)
    logger.info(f"Total: {report.total}")
    logger.info(f"Migrated: {report.migrated_count}")
    logger.info(f"Failed: {report.failed_count}")
    logger.info(f"Skipped: {report.skipped_count}")

    review = [u.name for u in report.units if u.needs_review]
    if review:
        logger.warning(f"Needs manual review: {', '.join(review)}")

    if report.errors:
        logger.warning(f"\nErrors ({len(report.errors)}):")
        for error in report.errors[:10]:  # Show first 10
            logger.warning(f"  - {error}")

    return report


def migrate_data(collection: str, export_dir: str, dry_run: bool):
    """Export a collection tree and load it into Supabase."""
    logger.info("=" * 60)
    logger.info(f"EXPORTING {collection}")
    logger.info("=" * 60)

    export = run_export(ExportConfig(
        collection=collection,
        include_subcollections=True,
        max_depth=2,
        output_dir=export_dir,
    ))
    for name, count in export.counts.items():
        logger.info(f"  {name}: {count} records")

    results = run_load(LoadConfig(input_dir=export_dir, dry_run=dry_run))
    for table, result in results.items():
        logger.info(f"  {table}: {result.total_succeeded}/{result.total_attempted} loaded")


def demo_with_sample_data():
    """Transpile the bundled sample functions into demo_output/."""
    logger.info("Running demo with sample functions...")

    output_dir = Path(__file__).parent / "demo_output"
    with tempfile.TemporaryDirectory() as source_dir:
        (Path(source_dir) / "index.js").write_text(SAMPLE_FUNCTIONS, encoding="utf-8")
        migrate_functions(source_dir, str(output_dir))

    logger.info(f"\nDemo complete! Check {output_dir} for the generated Edge Functions.")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Firebase to Supabase Migration"
    )
    parser.add_argument(
        "--source",
        help="Firebase functions source directory"
    )
    parser.add_argument(
        "--output",
        default="./supabase/functions",
        help="Output directory for Edge Functions"
    )
    parser.add_argument(
        "--collection",
        help="Firestore collection to export and load"
    )
    parser.add_argument(
        "--export-dir",
        default="./firestore-export",
        help="Directory for exported relation files"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Count records without writing to Supabase"
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Run demo with sample functions (no credentials needed)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.demo:
        demo_with_sample_data()
        return

    if not args.source and not args.collection:
        parser.error("Give --source, --collection or --demo")

    if args.source:
        report = migrate_functions(args.source, args.output)
        if report.fatal:
            sys.exit(2)

    if args.collection:
        # Check for required environment variables
        required_env = ["SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"]
        missing = [var for var in required_env if not os.environ.get(var)]

        if missing and not args.dry_run:
            logger.error(f"Missing required environment variables: {', '.join(missing)}")
            logger.info("Set these or use --dry-run for simulation")
            sys.exit(1)

        migrate_data(args.collection, args.export_dir, args.dry_run or bool(missing))


if __name__ == "__main__":
    main()
