#!/usr/bin/env python3
"""
Contact Insights Run - HubSpot segment to sales ideas and tasks.
Analyzes one contact or a whole segment and publishes the ideas as tasks.
Meant to be triggered by an external scheduler (cron, GitHub Actions).
"""

import os
import sys
import json
import time
import logging
import argparse
import traceback
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_FILE = 'contact-insights.log'

logger = logging.getLogger(__name__)


def configure_logging():
    """Console always; file too when running in GitHub Actions or when requested."""
    log_handlers = [logging.StreamHandler()]

    if os.environ.get('GITHUB_ACTIONS') or os.environ.get('LOG_TO_FILE'):
        file_handler = logging.FileHandler(LOG_FILE)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, os.environ.get('LOG_LEVEL', 'INFO').upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=log_handlers
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Generate sales ideas for HubSpot contacts and publish them as tasks')
    parser.add_argument('--segment', help='Segment (list) id to analyze. Defaults to HUBSPOT_LIST_ID')
    parser.add_argument('--contact', help='Analyze a single contact id instead of a segment')
    parser.add_argument('--dry-run', action='store_true', help='Log task writes instead of performing them')
    parser.add_argument('--json', action='store_true', help='Print the result as JSON on stdout')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the analysis. Returns the process exit code."""
    # Imported here so logging is configured before any module logs
    from analysis.service import build_orchestrator
    from shared_config import SystemConfig

    args = build_parser().parse_args(argv)
    start_time = time.time()

    config = SystemConfig.from_env(env_file=Path('.env'))
    if args.dry_run:
        config.dry_run = True
    config.require_hubspot()

    logger.info("🚀 STARTING CONTACT INSIGHTS RUN")
    config.log_config_summary()

    orchestrator = build_orchestrator(config)

    if args.contact:
        result, publication = orchestrator.run_contact(args.contact, args.segment)
        logger.info(f"✅ Contact {args.contact} analyzed in {time.time() - start_time:.1f}s")
        logger.info(f"   Ideas: {len(result.ideas)} ({result.provenance.value}), "
                    f"high priority: {result.high_priority}")
        if publication.tracker_failures:
            logger.warning(f"   ⚠️ {publication.tracker_failures} ClickUp tasks failed")
        if args.json:
            output = result.to_dict()
            output['task'] = {'id': publication.crm_task.id, 'url': publication.crm_task.url}
            output['trackerTasks'] = [{'id': t.id, 'url': t.url} for t in publication.tracker_tasks]
            print(json.dumps(output, indent=2, ensure_ascii=False))
        return 0

    report = orchestrator.run_segment(args.segment)
    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return 0


def cli():
    configure_logging()
    try:
        sys.exit(main())
    except SystemExit:
        raise
    except Exception as e:
        logger.error(f"❌ RUN FAILED: {e}")
        logger.error(f"Error type: {type(e).__name__}")
        logger.error("Stack trace:")
        logger.error(traceback.format_exc())
        sys.exit(1)


if __name__ == "__main__":
    cli()
