"""Command-line entry point for university administration.

This module lets an operator list universities and switch one between active
and inactive without going through the HTTP API. Deactivating a university
blocks every login and registration under its code.

Usage:
    python main.py list-universities
    python main.py set-university-status UNIV-001 inactive
"""

import argparse
import logging
import sys
from typing import List, Optional

from sqlalchemy.orm import Session

from core.database import SessionLocal, init_db
from core.exceptions import IdentityError
from core.logging_config import setup_logging
from utils.tenant_directory import TENANT_STATUSES, TenantDirectory

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="campus-identity",
        description="Manage universities registered with the Campus Identity service.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("list-universities", help="List all universities")

    status_parser = subcommands.add_parser(
        "set-university-status", help="Activate or deactivate a university"
    )
    status_parser.add_argument("code", help="University code, any case")
    status_parser.add_argument("status", choices=TENANT_STATUSES)
    return parser


def list_universities(db: Session) -> List[str]:
    """Format one line per university.

    Args:
        db: Database session.

    Returns:
        Lines of ``CODE  STATUS  NAME``, oldest university first.
    """
    tenants = TenantDirectory(db).list_tenants()
    return [f"{t.university_code:<12} {t.status:<8} {t.name}" for t in tenants]


def set_university_status(db: Session, code: str, status: str) -> str:
    """Change a university's status.

    Args:
        db: Database session.
        code: University code.
        status: 'active' or 'inactive'.

    Returns:
        Confirmation line.

    Raises:
        TenantNotFoundError: No university has this code.
        ValidationError: Unknown status.
    """
    directory = TenantDirectory(db)
    tenant = directory.find_by_code(code)
    tenant = directory.set_status(tenant.tenant_id, status)
    return f"{tenant.university_code} is now {tenant.status}"


def run(argv: Optional[List[str]], db: Session) -> int:
    """Execute one command against an open session.

    Args:
        argv: Command-line arguments without the program name.
        db: Database session.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    try:
        if args.command == "list-universities":
            lines = list_universities(db)
            if not lines:
                print("No universities registered.")
            for line in lines:
                print(line)
        else:
            print(set_university_status(db, args.code, args.status))
    except IdentityError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    setup_logging()
    init_db()
    db = SessionLocal()
    try:
        return run(argv, db)
    except Exception as e:
        logger.error("Command failed: %s", e)
        raise
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
