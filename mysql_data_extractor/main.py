#!/usr/bin/env python3
"""
MySQL Data Extractor - CLI Entry Point
======================================
Extracts a selected subset of rows from MySQL/MariaDB databases into a
single SQL script with support for:
- Foreign key aware table ordering
- Include/exclude table patterns
- Row sampling (fixed count, percentage, per-table overrides)
- Resumable runs for large datasets
"""

import argparse
import logging
import sys

import yaml
from dotenv import load_dotenv

from .config import ConfigLoader, build_config
from .extractor import DataExtractor
from .planner import PlanningError
from .utils import print_dry_run_info, setup_logging


def comma_list(value: str) -> list[str]:
    """argparse type for comma-separated lists."""
    return [item.strip() for item in value.split(',') if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='MySQL Data Extractor - Selective, resumable data extraction '
                    'preserving referential integrity'
    )
    parser.add_argument(
        '-c', '--config',
        help='Path to an optional YAML configuration file'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show the extraction plan without extracting any data'
    )

    conn_group = parser.add_argument_group('connection')
    conn_group.add_argument('-H', '--host', help='MariaDB host (env: MARIADB_HOST)')
    conn_group.add_argument('-P', '--port', type=int, help='MariaDB port (env: MARIADB_PORT)')
    conn_group.add_argument('-u', '--user', help='MariaDB username (env: MARIADB_USER)')
    conn_group.add_argument('-p', '--password', help='MariaDB password (env: MARIADB_PASSWORD)')
    conn_group.add_argument(
        '-t', '--timeout', type=int,
        help='Query timeout in seconds (env: MARIADB_TIMEOUT, default: 300)'
    )

    db_group = parser.add_argument_group('database selection')
    db_group.add_argument(
        '-d', '--databases', type=comma_list,
        help='Specific databases to extract (comma-separated)'
    )
    db_group.add_argument(
        '--all-databases', action='store_true', default=None,
        help='Extract all databases (including system databases)'
    )
    db_group.add_argument(
        '--all-user-databases', action='store_true', default=None,
        help='Extract all user databases (excluding system databases)'
    )
    db_group.add_argument(
        '--exclude-databases', type=comma_list,
        help='Databases to exclude (supports * wildcards)'
    )

    table_group = parser.add_argument_group('table filtering')
    table_group.add_argument(
        '--include-tables', type=comma_list,
        help='Tables to include (supports * wildcards)'
    )
    table_group.add_argument(
        '--exclude-tables', type=comma_list,
        help='Tables to exclude (supports * wildcards)'
    )

    sample_group = parser.add_argument_group('sampling')
    sample_group.add_argument(
        '--sample-tables', type=comma_list,
        help='Sample specific tables (format: table:count or table:N%%)'
    )
    sample_group.add_argument(
        '--sample-percent', type=int,
        help='Global sample percentage (0-100)'
    )
    sample_group.add_argument(
        '--max-rows', type=int,
        help='Maximum rows per table (0=unlimited)'
    )

    out_group = parser.add_argument_group('output')
    out_group.add_argument(
        '-o', '--output',
        help='Output file prefix (env: MARIADB_OUTPUT_PREFIX, default: data-extract)'
    )
    out_group.add_argument('--output-dir', help='Output directory (default: output)')
    out_group.add_argument(
        '--batch-size', type=int,
        help='Rows per INSERT statement (env: MARIADB_BATCH_SIZE, default: 100)'
    )
    out_group.add_argument(
        '--progress-interval', type=int,
        help='Show progress every N rows (default: 1000)'
    )

    parser.add_argument(
        '--no-foreign-key-check',
        action='store_true',
        help='Skip foreign key dependency ordering'
    )
    parser.add_argument(
        '--resume',
        metavar='RUN_ID',
        help='Resume the extraction run with this ID'
    )
    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()

    # Load configuration
    file_config = {}
    log_settings = {}
    if args.config:
        try:
            loader = ConfigLoader(args.config)
        except FileNotFoundError:
            print(f"Error: Configuration file '{args.config}' not found")
            sys.exit(1)
        except yaml.YAMLError as e:
            print(f"Error: Invalid YAML in configuration file: {e}")
            sys.exit(1)
        except ValueError as e:
            print(f"Error: {e}")
            sys.exit(1)
        file_config = loader.config
        log_settings = dict(loader.get_logging_settings())

    # Setup logging
    if args.verbose:
        log_settings['level'] = 'DEBUG'
    setup_logging(log_settings)

    overrides = {
        key: value for key, value in vars(args).items()
        if key not in ('config', 'verbose', 'dry_run')
    }

    try:
        config = build_config(file_config, overrides)
        config.validate()
    except ValueError as e:
        logging.error(f"Configuration error: {e}")
        sys.exit(1)

    extractor = DataExtractor(config)

    try:
        # Dry run mode
        if args.dry_run:
            logging.info("DRY RUN MODE - No data will be extracted")
            print_dry_run_info(extractor.plan_only())
            sys.exit(0)

        extractor.run()

    except PlanningError as e:
        logging.error(f"Nothing to extract: {e}")
        sys.exit(1)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
