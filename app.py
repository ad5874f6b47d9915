#!/usr/bin/env python3
"""
Main entry point for the link registry service.

The registry is a single-process, single-writer component: run one worker.
Its snapshot is loaded once at startup and rewritten on every mutation.

Usage:
    python app.py

Environment variables:
    STORAGE_BACKEND - file (default), memory or redis
    STORAGE_PATH - JSON file for the file backend
    REDIS_URL - Redis connection URL for the redis backend
    BASE_URL - Base URL for short links
    PORT - Port to listen on
    LOG_LEVEL - Logging level
"""

import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import create_storage, load_config
from linkreg.registry import LinkRegistry
from linkreg.shortcode import ShortCodeGenerator
from linkreg.common.logging_config import setup_logging
from web_app import create_app


def build_registry(config, logger) -> LinkRegistry:
    """Construct an unloaded registry from configuration."""
    return LinkRegistry(
        storage=create_storage(config, logger=logger),
        short_code_generator=ShortCodeGenerator(default_length=config.short_code_length),
        logger=logger,
        base_url=config.base_url,
        path_prefix=config.path_prefix,
        enable_custom_codes=config.enable_custom_codes,
        max_collision_retries=config.max_collision_retries,
        default_validity_minutes=config.default_validity_minutes,
        max_validity_minutes=config.max_validity_minutes,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    config = app.state.config
    logger = app.state.logger

    logger.info("Starting link registry service...")
    logger.info(f"Using {config.storage_backend} storage")

    registry = build_registry(config, logger)
    await registry.load()
    app.state.registry = registry

    logger.info("Service started successfully")

    yield

    logger.info("Shutting down link registry service...")
    await registry.close()
    logger.info("Service stopped")


def main():
    """Main entry point."""
    config = load_config()

    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )

    logger.info("Link Registry Service")
    logger.info(f"Configuration: {config.model_dump()}")

    app = create_app(registry=None, config=config)  # registry is set in lifespan
    app.state.logger = logger
    app.router.lifespan_context = lifespan

    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        workers=1,
        log_level=config.log_level.lower(),
        access_log=True,
        log_config=None,
    )

    server = uvicorn.Server(uvicorn_config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        server.should_exit = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
