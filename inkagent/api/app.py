from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from inkagent import __version__
from inkagent.api.routes.agent import router as agent_router
from inkagent.api.routes.chat import router as chat_router
from inkagent.api.routes.health import router as health_router
from inkagent.api.routes.tools import router as tools_router
from inkagent.utils.logger import api_logger, request_log


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: hook config hot-reload into the chat service
    try:
        if hasattr(app.state, "config_manager"):
            from inkagent.api.deps import get_chat_service
            from inkagent.config import settings

            manager = app.state.config_manager

            def on_config_change(new_config):
                if any(path.startswith("llm.") for path in manager.last_changed):
                    get_chat_service().invalidate_provider()
                config_valid, config_errors = settings.validation_status()
                api_logger.info(
                    "Config validity after reload",
                    config_valid=config_valid,
                    config_errors=config_errors or None,
                )

            app.state.config_manager.register_change_callback(on_config_change)
            await app.state.config_manager.start_watching()
            api_logger.info("Config file watcher started with change callback")
    except Exception as e:
        api_logger.error("Startup initialization failed", exc_info=True, error=str(e))
        raise

    yield

    # Shutdown
    if hasattr(app.state, "config_manager"):
        try:
            await app.state.config_manager.stop_watching()
            api_logger.info("Config file watcher stopped")
        except asyncio.CancelledError:
            api_logger.debug("Config watcher stop cancelled")
        except Exception as e:
            api_logger.error("Shutdown cleanup failed", exc_info=True, error=str(e))


def create_app() -> FastAPI:
    app = FastAPI(
        title="inkagent",
        description="Tool-augmented LLM chat server with streamed reasoning",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(agent_router)
    app.include_router(chat_router)
    app.include_router(tools_router)
    app.include_router(health_router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        # Streaming responses are logged when headers go out, not at end of body
        request_log(
            api_logger,
            request.method,
            request.url.path,
            response.status_code,
            (time.time() - start_time) * 1000,
        )
        return response

    return app
