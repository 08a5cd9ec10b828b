"""
==========================================
Command-line entry point for fluent_sql.
==========================================

Thin CLI around the query builder and the MySQL adapter:
    - verify database connectivity
    - print sample statements rendered by the builder (no database needed)
    - preview rows of a table

Usage:
    python main.py --verify
    python main.py --demo
    python main.py --query customers --limit 5
"""

import argparse
import sys
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from core.config import config
from core.logger import get_logger, setup_logging
from fluent_sql import QueryBuilder, QueryBuilderError
from utils.database_utils import (
    MySQLAdapter,
    get_database_connection_info,
    verify_connection,
)

logger = get_logger(__name__)


def render_demo_statements(qb: QueryBuilder) -> List[str]:
    """Render one statement of each kind with the given builder."""
    active_customers = (
        qb.select('customer_id')
        .from_('subscriptions')
        .where('status = ?', 'active')
        .get_query(True, '')
    )

    statements = [
        qb.select({'total': 'SUM(o.amount)'}, 'c.region')
        .from_({'o': 'orders'})
        .join_left({'c': 'customers'}, 'c.id = o.customer_id')
        .where('o.paid = ?', 1)
        .where('o.customer_id IN (?)', active_customers)
        .where_new_ambit('OR')
        .where('c.region IN (?)', ['north', 'south'])
        .group('c.region')
        .order('total DESC')
        .limit(10)
        .get_query(True),
        qb.insert('customers', {'name': "O'Brien", 'region': 'north', 'credit': 250})
        .get_query(True),
        qb.update('customers').set({'region': 'south'}).where('id = ?', 42).get_query(True),
        qb.delete('customers').where('id = ?', 42).get_query(True),
    ]
    return statements


def run_table_query(table: str, limit: int) -> int:
    """Print up to `limit` rows of `table`."""
    with MySQLAdapter() as adapter:
        qb = QueryBuilder(adapter)
        rows = qb.select().from_(table).limit(limit).to_array().execute()
        logger.info(f"{qb.get_last_query()}")
        for row in rows:
            print(row)
        logger.info(f"✅ {len(rows)} row(s) from `{table}`")
    return 0


def main() -> int:
    """
    Command-line interface for the query builder.

    Exit Codes:
        0: Success
        1: Error
        130: User interrupt (Ctrl+C)
    """
    parser = argparse.ArgumentParser(
        description="fluent_sql - MySQL statement builder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --verify
  python main.py --demo
  python main.py --query customers --limit 5
        """
    )
    parser.add_argument(
        '--verify',
        action='store_true',
        help='Check that the configured MySQL server is reachable'
    )
    parser.add_argument(
        '--demo',
        action='store_true',
        help='Print sample SELECT/INSERT/UPDATE/DELETE statements'
    )
    parser.add_argument(
        '--query',
        metavar='TABLE',
        type=str,
        help='Print the first rows of TABLE'
    )
    parser.add_argument(
        '--limit',
        type=int,
        default=10,
        help='Row limit for --query (default: 10)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging (DEBUG level)'
    )

    args = parser.parse_args()

    setup_logging(log_level='DEBUG' if args.verbose else config.query.log_level)

    try:
        if args.verify:
            info = get_database_connection_info()
            logger.info(f"Checking {info['user']}@{info['host']}:{info['port']}/{info['database']}")
            success, message = verify_connection()
            if success:
                logger.info(f"✅ {message}")
                return 0
            logger.error(f"❌ {message}")
            return 1

        elif args.demo:
            for statement in render_demo_statements(QueryBuilder(MySQLAdapter())):
                print(statement)
                print()
            return 0

        elif args.query:
            return run_table_query(args.query, args.limit)

        else:
            parser.print_help()
            logger.warning("⚠️  No operation specified. Use --verify, --demo or --query.")
            return 1

    except QueryBuilderError as e:
        logger.error(f"❌ Invalid statement: {e}")
        return 1
    except SQLAlchemyError as e:
        logger.error(f"❌ Database error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("⚠️  Operation interrupted by user")
        return 130


if __name__ == '__main__':
    sys.exit(main())
