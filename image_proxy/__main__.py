"""Process entry point: python -m image_proxy"""

from aiohttp import web

from .config_manager import ConfigManager
from .proxy_logger import logger, configure_logging
from .server import create_app


def main():
    manager = ConfigManager()
    config = manager.load_config()
    configure_logging(config.log_level, include_timestamp=True)

    # Never log credential values, only which one is missing
    for problem in manager.validate_config():
        logger.warning(f"Warning: {problem}")

    app = create_app(config)
    logger.info(f"Server listening on port {config.port} (provider={config.provider})")
    web.run_app(app, port=config.port, print=None)


if __name__ == "__main__":
    main()
