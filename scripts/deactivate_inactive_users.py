"""
Deactivate accounts that have not logged in for INACTIVE_USER_DAYS days.

Meant to run from cron:
    python scripts/deactivate_inactive_users.py [--days N]
"""
import argparse
import logging
import os
import sys
from sqlmodel import Session

# Add current directory to path
sys.path.append(os.getcwd())

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.db.session import engine
from app.services.accounts import deactivate_inactive_users

logger = logging.getLogger("deactivate_inactive_users")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--days", type=int, default=settings.INACTIVE_USER_DAYS)
    args = parser.parse_args(argv)

    with Session(engine) as session:
        users, threshold = deactivate_inactive_users(session, days=args.days)
        for user in users:
            logger.info("Deactivated %s", user.email)
    logger.info("Done: %d account(s) deactivated, threshold %s", len(users), threshold)
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(main())
