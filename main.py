"""
Main Application Runner
Starts the Visit Log API server.
"""
import logging
import signal
import sys

from visitlog.app import create_app
from visitlog.config.settings import Config
from visitlog.repositories.mongo_repository import close_client
from visitlog.utils.logger import setup_logging

setup_logging(Config.LOG_LEVEL, Config.LOG_DIR)

logger = logging.getLogger(__name__)


def signal_handler(signum, frame):
    """Handle shutdown signals."""
    logger.info("Received shutdown signal. Stopping server...")
    close_client()
    sys.exit(0)


def main():
    """Main application entry point."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("=== Campus Visit Log ===")
    app = create_app()

    logger.info(f"Serving on http://{Config.HOST}:{Config.PORT}")
    try:
        app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG, threaded=True)
    finally:
        close_client()
        logger.info("Server stopped.")


if __name__ == "__main__":
    main()
