"""
Send a delivery check through the configured mailer.

    python -m academy.scripts.send_test_email someone@example.com
"""

import asyncio
import logging
import sys

from academy.core.config import get_config
from academy.core.logger import setup_logging
from academy.notifications.mailer import SendGridMailer
from academy.notifications.templates import delivery_check_email

logger = logging.getLogger("academy.scripts.send_test_email")


async def main(to: str) -> int:
    config = get_config()
    mailer = SendGridMailer(config.SENDGRID_API_KEY, config.EMAIL_FROM)
    subject, text, html = delivery_check_email()
    result = await mailer.send(to, subject, text, html)
    if result.ok:
        logger.info("Sent to %s (status %s, message id %s)", to, result.status_code, result.message_id)
        return 0
    logger.error("Send to %s failed: %s", to, result.error)
    return 1


if __name__ == "__main__":
    setup_logging()
    if len(sys.argv) != 2:
        print("usage: python -m academy.scripts.send_test_email <to>", file=sys.stderr)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1])))
