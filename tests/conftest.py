"""Shared pytest fixtures for all tests."""

import json
from collections.abc import Callable

import pytest

from inkagent.tools import Capability, ParameterSpec, ToolRegistry


class ScriptedModel:
    """Fake model call: each invocation streams the next scripted turn.

    A turn is a list of chunks; an Exception instance in the list is raised
    at that point of the stream. Every call records the messages it saw and
    whether its stream was closed.
    """

    def __init__(self, turns: list[list]):
        self.turns = list(turns)
        self.calls: list[list] = []
        self.closed = 0

    def __call__(self, messages):
        self.calls.append(list(messages))
        turn = self.turns.pop(0) if self.turns else []
        return self._stream(turn)

    async def _stream(self, turn):
        try:
            for chunk in turn:
                if isinstance(chunk, Exception):
                    raise chunk
                yield chunk
        finally:
            self.closed += 1


@pytest.fixture
def scripted_model() -> Callable[[list[list]], ScriptedModel]:
    return ScriptedModel


@pytest.fixture
def echo_capability() -> Capability:
    return Capability(
        name="echo",
        description="Echo the given text back",
        parameters={"text": ParameterSpec(type="string", description="Text to echo")},
        handler=lambda args: args["text"],
    )


@pytest.fixture
def registry(echo_capability) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(echo_capability)
    return registry


@pytest.fixture
def bind_config(tmp_path, monkeypatch):
    """Bind the global settings to a ConfigManager over a temp config file.

    Returns an async factory taking the user config dict; bindings are
    restored after the test.
    """
    import inkagent.config.manager as mgr_module
    from inkagent.config import settings
    from inkagent.config.defaults import get_default_config
    from inkagent.config.providers import LocalFileConfigProvider

    for env_key in ("OPENAI_API_KEY", "INKAGENT_MODEL", "KNOWLEDGE_SEARCH_URL"):
        monkeypatch.delenv(env_key, raising=False)

    old_manager = mgr_module._config_manager
    old_settings_manager = settings._config_manager

    async def factory(user_config: dict | None = None):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps(user_config or {}, indent=2))
        provider = LocalFileConfigProvider(config_path, defaults=get_default_config())
        manager = mgr_module.ConfigManager(provider)
        await manager.initialize()
        mgr_module._config_manager = manager
        settings._config_manager = manager
        return manager

    yield factory

    mgr_module._config_manager = old_manager
    settings._config_manager = old_settings_manager
