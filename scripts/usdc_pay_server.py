#!/usr/bin/env python3
import logging
import signal
import sys
import threading

from usdc_pay.config import load_config_from_env
from usdc_pay.server import PaymentToolServer


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("usdc_pay_server")


def main() -> int:
    try:
        config = load_config_from_env()
    except (ValueError, FileNotFoundError) as exc:
        logger.error("Invalid payment configuration: %s", exc)
        return 1

    server = PaymentToolServer(config)
    stop_event = threading.Event()

    def _shutdown(signum, _frame) -> None:
        logger.info("Received signal %s, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    server.start()
    logger.info(
        "Payment tools ready network=%s default_chain=%s",
        config.network,
        config.default_chain,
    )
    try:
        stop_event.wait()
    finally:
        server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
