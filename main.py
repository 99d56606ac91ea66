#!/usr/bin/env python3
"""Main entry point for the inkagent server.

Bootstraps a Uvicorn ASGI server for inkagent.api.server:app.
Loads .env file from --workdir if present to populate environment variables,
and keeps layered configuration in <workdir>/.inkagent/config.json.
"""

import asyncio
import os
import sys
from argparse import ArgumentParser
from pathlib import Path

if __name__ == "__main__":
    # Parse arguments FIRST (before any config validation) so --help works always
    parser = ArgumentParser(description="Start inkagent server")
    parser.add_argument(
        "--workdir",
        default=".",
        help="Directory holding .env and the .inkagent config directory",
    )
    parser.add_argument(
        "--host",
        help="Bind address. Overrides config and SERVER_HOST env var.",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Bind port. Overrides config and SERVER_PORT env var.",
    )
    parser.add_argument(
        "--log-format",
        choices=["pretty", "json"],
        help="Log format (pretty or json). Overrides config and LOG_FORMAT env var.",
    )
    parser.add_argument(
        "--log-colors",
        type=lambda x: x.lower() in ("true", "1", "yes", "on"),
        help="Enable colored logs (true/false). Overrides config and LOG_COLORS env var.",
    )
    args, _ = parser.parse_known_args()

    # Set logging env vars from CLI flags before logger import
    if args.log_format:
        os.environ["LOG_FORMAT"] = args.log_format
    if args.log_colors is not None:
        os.environ["LOG_COLORS"] = "true" if args.log_colors else "false"

    from inkagent.utils.logger import get_logger

    startup_logger = get_logger("server.startup")

    workdir_path = Path(args.workdir).expanduser().resolve()
    if not workdir_path.is_dir():
        startup_logger.error("--workdir is not a directory", path=str(workdir_path))
        sys.exit(1)

    from dotenv import load_dotenv

    env_file = workdir_path / ".env"
    if env_file.exists():
        load_dotenv(dotenv_path=env_file, override=False)
        startup_logger.debug("Loaded .env file", path=str(env_file))
    else:
        startup_logger.debug("No .env file found in workdir", path=str(env_file))

    from inkagent.config import create_config_manager, get_default_config, settings
    from inkagent.config.constants import CONFIG_DIR_NAME

    try:
        config_dir = workdir_path / CONFIG_DIR_NAME
        config_dir.mkdir(parents=True, exist_ok=True)

        config_manager = create_config_manager(
            config_dir, defaults=get_default_config()
        )
        # The watcher starts later, inside the server's event loop
        asyncio.run(config_manager.initialize())

        settings._config_manager = config_manager

        startup_logger.info(
            "Configuration initialized",
            config_file=str(config_dir / "config.json"),
        )
    except Exception as e:
        startup_logger.error("Failed to initialize configuration", error=str(e))
        sys.exit(1)

    config_valid, config_errors = settings.validation_status()
    if not config_valid:
        # Keep serving: /health reports the problem and chat routes answer 500
        startup_logger.warning(
            "Configuration incomplete", config_errors=config_errors
        )

    try:
        import uvicorn

        from inkagent.config.logging_config import LOGGING_CONFIG
        from inkagent.services.knowledge import HttpArticleSearcher
        from inkagent.tools import build_registry

        registry = build_registry(
            HttpArticleSearcher(settings.search_url, timeout=settings.search_timeout)
        )
        startup_logger.info("Tool registry built", tools=registry.names())

        host = args.host or settings.server_host
        port = args.port or settings.server_port

        startup_logger.info(
            "Starting inkagent server",
            server_url=f"http://{host}:{port}",
            docs_url=f"http://{host}:{port}/docs",
            workdir=str(workdir_path),
        )

        from inkagent.api.server import app

        # Pass config manager to app for lifespan
        app.state.config_manager = config_manager

        uvicorn.run(
            app,
            host=host,
            port=port,
            log_config=LOGGING_CONFIG,
            lifespan="on",
            timeout_graceful_shutdown=5,
        )
    except ImportError as e:
        startup_logger.error(
            "Error importing required modules",
            error=str(e),
            hint="Run: pip install -e .",
        )
        sys.exit(1)
    except Exception as e:
        startup_logger.error("Error starting server", error=str(e))
        sys.exit(1)
