#!/usr/bin/env python3
"""
G2B Bid Monitor - Main Entry Point

Checks the 나라장터 (G2B) portal for new bid announcements of one agency,
stores unseen ones in Supabase and posts them to a Discord webhook.

Usage:
    python main.py [options]

Options:
    --config PATH       Path to configuration file (default: config/config.yaml)
    --env-file PATH     Path to .env file with secrets (default: .env)
    --log-level LEVEL   Set log level (DEBUG, INFO, WARNING, ERROR)
    --headed            Show the browser window
    --dry-run           Show settings without browsing
    --help              Show this help message
"""

import sys
import argparse
from pathlib import Path
import logging

from g2b_monitor.config import ConfigurationError, load_config, validate_config
from g2b_monitor.crawler import MonitorEngine
from g2b_monitor.utils import setup_logger


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='G2B Bid Monitor - Detect new bid announcements on 나라장터',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--config',
        type=Path,
        default=Path('config/config.yaml'),
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--env-file',
        type=Path,
        help='Path to .env file with SUPABASE_URL, SUPABASE_KEY, DISCORD_WEBHOOK_URL'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Set log level'
    )

    parser.add_argument(
        '--headed',
        action='store_true',
        help='Run the browser with a visible window'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Dry run mode - load config and show settings without browsing'
    )

    return parser.parse_args(argv)


def setup_logging(config: dict) -> None:
    log_config = config.get('logging', {})
    log_dir = Path(log_config.get('file', {}).get('directory', 'logs'))
    log_config_path = Path('config/logging.yaml')

    setup_logger(
        config_path=log_config_path if log_config_path.exists() else None,
        log_level=log_config.get('level', 'INFO'),
        log_dir=log_dir
    )


def print_settings(config: dict) -> None:
    logger = logging.getLogger(__name__)
    store = config.get('store', {})
    notifier = config.get('notifier', {})

    logger.info("=" * 70)
    logger.info("DRY RUN MODE - Configuration loaded successfully")
    logger.info("=" * 70)
    logger.info(f"Portal URL: {config.get('website', {}).get('home_url', 'N/A')}")
    logger.info(f"Agency: {config.get('target', {}).get('agency_name')} "
                f"({config.get('target', {}).get('agency_code')})")
    logger.info(f"Lookback months: {config.get('target', {}).get('lookback_months')}")
    logger.info(f"Headless: {config.get('crawler', {}).get('browser', {}).get('headless', True)}")
    logger.info(f"Store: {store.get('url') or 'NOT SET'} (table: {store.get('table')})")
    logger.info(f"Discord webhook: {'set' if notifier.get('webhook_url') else 'NOT SET'}")
    logger.info("=" * 70)


def run_monitor(config: dict) -> int:
    """
    Run the monitor once.

    Args:
        config: Configuration dictionary

    Returns:
        Process exit code
    """
    logger = logging.getLogger(__name__)

    try:
        validate_config(config)
    except ConfigurationError as e:
        logger.error(f"Error: {e}")
        return 1

    try:
        report = MonitorEngine(config).run()
    except KeyboardInterrupt:
        logger.warning("Monitor interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Monitor failed: {e}", exc_info=True)
        return 1

    if report.status.value != 'completed':
        logger.warning(f"Run finished with status: {report.status.value}")
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    try:
        config = load_config(args.config, env_file=args.env_file)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.log_level:
        config.setdefault('logging', {})['level'] = args.log_level

    if args.headed:
        config.setdefault('crawler', {}).setdefault('browser', {})['headless'] = False

    setup_logging(config)

    logger = logging.getLogger(__name__)
    logger.info(f"Configuration loaded from: {args.config}")

    if args.dry_run:
        print_settings(config)
        return 0

    return run_monitor(config)


if __name__ == '__main__':
    sys.exit(main())
