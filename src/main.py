import argparse
import logging
import ssl
import sys

import uvicorn

from config.config import CONFIG_FILE, parse_config
from config.logging_config import setup_logging
from core.errors import ConfigError
from server import create_app

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Prometheus exporter for OpenOTP servers")
    parser.add_argument(
        "--config", default=CONFIG_FILE, help="Path to configuration file"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    try:
        config = parse_config(args.config)
    except ConfigError as e:
        logging.basicConfig()
        logger.critical(f"Cannot parse config: {e}")
        return 1
    try:
        setup_logging(config.logging.level, config.logging.filename, config.logging.journal)
    except ValueError as e:
        logging.basicConfig()
        logger.critical(f"Unable to configure logging: {e}")
        return 1

    try:
        app = create_app(config)
    except (OSError, ssl.SSLError) as e:
        logger.critical(f"Unable to load API certificate {config.api.certfile}: {e}")
        return 1
    logger.info(f"Listening on {config.listen_host}:{config.exporter.port}")
    uvicorn.run(app, host=config.listen_host, port=config.exporter.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
