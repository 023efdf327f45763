"""Monthly usage reset; run from cron as ``python -m cardvault.reset_usage``."""
import logging

import psycopg2
from dotenv import load_dotenv

from . import app_context
from .app.services.billing import get_billing_service
from .config import load_database_config

logger = logging.getLogger("billing")


def _connect():
    return psycopg2.connect(**load_database_config().connect_kwargs())


def _unconfigured_user(*_args, **_kwargs):
    raise RuntimeError("reset_usage does not authenticate users")


def main() -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    app_context.configure(get_conn=_connect, get_current_user=_unconfigured_user)
    reset = get_billing_service().reset_monthly_usage()
    logger.info("Monthly usage reset for %s users", reset)
    print(f"Done. Reset usage counters for {reset} users.")
    return reset


if __name__ == "__main__":
    main()
