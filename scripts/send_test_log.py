"""Send a few log records to POGR through the real intake endpoints.

Reads POGR_ACCESS / POGR_SECRET (keyring or .env) and optional pogr.yaml from
the project root, installs the handler on the root logger, emits some records
and waits for delivery before exiting.

Usage:
    python scripts/send_test_log.py
"""

import logging
import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv(_PROJECT_ROOT / ".env")


def main() -> None:
    from pogr_logging import install, load_settings
    from pogr_logging.logging_config import setup_logging

    settings = load_settings(
        config_path=_PROJECT_ROOT / "pogr.yaml",
        env_file=_PROJECT_ROOT / ".env",
    )
    setup_logging(settings)
    handler = install(settings)
    logging.getLogger().setLevel(logging.DEBUG)

    log = logging.getLogger("send_test_log")
    log.info("This is a test log message", extra={"service": "TestService"})
    log.warning("Disk usage high", extra={"ratio": 0.92, "mount": "/"})
    try:
        raise ValueError("boom")
    except ValueError:
        log.exception("Handled failure", extra={"retries": 0})

    handler.close()
    stats = handler.appender.stats()
    print(
        f"submitted={stats.submitted} delivered={stats.delivered} "
        f"failed={stats.failed} dropped={stats.dropped}"
    )
    if handler.appender.session.error is not None:
        print(f"session error: {handler.appender.session.error}")


if __name__ == "__main__":
    main()
