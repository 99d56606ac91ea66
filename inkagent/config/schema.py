from __future__ import annotations

from copy import deepcopy
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from inkagent.config.constants import (
    DEFAULT_CHAT_MAX_TOKENS,
    DEFAULT_CHAT_TEMPERATURE,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_REASONING_CLOSE_MARKER,
    DEFAULT_REASONING_OPEN_MARKER,
    DEFAULT_RETRIEVAL_LIMIT,
    DEFAULT_SEARCH_TIMEOUT,
)


def deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge updates into base without mutating inputs.

    - Keys present in updates with non-None values are merged/overwritten
    - Keys present in updates with None values are skipped (preserve base value)
    - Keys not present in updates are preserved from base
    """
    result = deepcopy(base)
    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif key in result and value is None:
            continue
        else:
            result[key] = value
    return result


class LLMConfig(BaseModel):
    type: Literal["openai"] = "openai"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = DEFAULT_CHAT_TEMPERATURE
    max_tokens: int = DEFAULT_CHAT_MAX_TOKENS

    model_config = ConfigDict(extra="ignore")


class AgentConfig(BaseModel):
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1)
    verbose: bool = False

    model_config = ConfigDict(extra="ignore")


class StreamConfig(BaseModel):
    reasoning_open_marker: str = DEFAULT_REASONING_OPEN_MARKER
    reasoning_close_marker: str = DEFAULT_REASONING_CLOSE_MARKER

    model_config = ConfigDict(extra="ignore")


class KnowledgeConfig(BaseModel):
    search_url: str | None = None
    retrieval_limit: int = Field(default=DEFAULT_RETRIEVAL_LIMIT, ge=1)
    timeout: float = DEFAULT_SEARCH_TIMEOUT

    model_config = ConfigDict(extra="ignore")


class AppConfig(BaseModel):
    llm: LLMConfig = Field(default_factory=LLMConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    knowledge: KnowledgeConfig = Field(default_factory=KnowledgeConfig)

    server_host: str = "localhost"
    server_port: int = 8765
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_colors: bool = True

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def check_markers(self) -> AppConfig:
        """The private reasoning markers must not collide with the wire tags."""
        errors = []
        reserved = {"<think>", "</think>", "<content>", "</content>"}
        for marker in (
            self.stream.reasoning_open_marker,
            self.stream.reasoning_close_marker,
        ):
            if not marker:
                errors.append("Stream reasoning markers must be non-empty")
            elif marker in reserved:
                errors.append(
                    f"Stream reasoning marker '{marker}' collides with a wire tag"
                )
        if errors:
            raise ValueError("; ".join(errors))
        return self


class ConfigValidationError(Exception):
    """Structured configuration validation error."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate configuration using the pydantic schema.

    Raises:
        ConfigValidationError: With structured list of human-readable error messages.
    """
    try:
        app_config = AppConfig.model_validate(config)
        return app_config.model_dump(mode="json")
    except ValidationError as e:
        errors = _extract_validation_errors(e)
        raise ConfigValidationError(errors) from e
    except ValueError as e:
        errors = [err.strip() for err in str(e).split(";") if err.strip()]
        raise ConfigValidationError(errors) from e


def _extract_validation_errors(exc: ValidationError) -> list[str]:
    """Convert pydantic ValidationError to list of human-readable messages."""
    errors = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err["loc"]) if err["loc"] else "config"
        msg = err["msg"]

        if msg.startswith("Value error, "):
            msg = msg[len("Value error, ") :]

        if err["type"] == "value_error":
            errors.extend(part.strip() for part in msg.split(";") if part.strip())
        elif err["type"] == "missing":
            errors.append(f"Missing required field: {loc}")
        elif err["type"] == "string_type":
            errors.append(f"Expected string at '{loc}'")
        elif err["type"] in ("int_type", "int_parsing"):
            errors.append(f"Expected integer at '{loc}'")
        elif err["type"] in ("bool_type", "bool_parsing"):
            errors.append(f"Expected boolean at '{loc}'")
        elif err["type"] in ("dict_type", "model_type"):
            errors.append(f"Expected object at '{loc}'")
        else:
            errors.append(f"{loc}: {msg}")

    return errors if errors else ["Invalid configuration"]
