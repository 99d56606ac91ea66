from __future__ import annotations

import os

from fastapi import APIRouter, Depends

from inkagent import __version__
from inkagent.api.deps import get_registry
from inkagent.api.schemas import HealthResponse
from inkagent.config import settings
from inkagent.tools.registry import ToolRegistry

router = APIRouter()


def check_config_validity() -> tuple[bool, list[str]]:
    """Check if configuration is valid and return errors if any."""
    valid, raw_errors = settings.validation_status()
    if valid:
        return True, []
    errors = []
    for error_msg in raw_errors:
        if "OPENAI_API_KEY" in error_msg or "api_key" in error_msg.lower():
            errors.append("API key not configured")
        elif "model" in error_msg.lower():
            errors.append("Model not configured")
        else:
            errors.append(error_msg)
    return False, errors


@router.get("/health", response_model=HealthResponse)
async def health(registry: ToolRegistry = Depends(get_registry)):  # noqa: B008
    """Liveness probe that also reports whether the model is usable."""
    config_valid, config_errors = check_config_validity()
    return HealthResponse(
        status="ok",
        service="inkagent",
        version=__version__,
        pid=os.getpid(),
        tools=registry.names(),
        config_valid=config_valid,
        config_errors=config_errors or None,
    )
