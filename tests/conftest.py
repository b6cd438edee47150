"""Pytest fixtures and configuration for email categorizer tests.

Provides common fixtures for configuration and a scripted fake of the
generation service built on httpx.MockTransport.
"""

import asyncio
import json
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest

from categorizer.config import reset_config
from categorizer.config_schema import AppConfig

ResponseSpec = int | dict[str, Any] | Exception | Callable[[httpx.Request], httpx.Response]


class FakeGenerationService:
    """Scripted stand-in for the generateContent endpoint.

    Each entry in ``script`` answers one request, in order:
    - int: a response with that status code (and a small JSON error body)
    - dict: a 200 response with that JSON body
    - Exception: raised from the transport (network fault)
    - callable: called with the request, must return an httpx.Response
    """

    def __init__(self, script: list[ResponseSpec]):
        self.script = list(script)
        self.requests: list[httpx.Request] = []
        self.clients: list[httpx.AsyncClient] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.script:
            raise AssertionError(f"Unexpected request #{len(self.requests)}: {request.url}")
        spec = self.script.pop(0)

        if isinstance(spec, Exception):
            raise spec
        if callable(spec):
            return spec(request)
        if isinstance(spec, dict):
            return httpx.Response(200, json=spec)
        return httpx.Response(
            spec,
            json={"error": {"code": spec, "message": f"status {spec}", "status": "ERROR"}},
        )

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def json_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    def http_client(self) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self))
        self.clients.append(client)
        return client

    async def aclose(self) -> None:
        for client in self.clients:
            if not client.is_closed:
                await client.aclose()


class SleepRecorder:
    """Async sleep replacement that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_service() -> Generator[Callable[[list[ResponseSpec]], FakeGenerationService], None, None]:
    """Factory for a FakeGenerationService with a given response script.

    HTTP clients handed out by the services are closed on teardown.
    """
    services: list[FakeGenerationService] = []

    def _make(script: list[ResponseSpec]) -> FakeGenerationService:
        service = FakeGenerationService(script)
        services.append(service)
        return service

    yield _make

    loop = asyncio.new_event_loop()
    try:
        for service in services:
            loop.run_until_complete(service.aclose())
    finally:
        loop.close()


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a minimal valid config.yaml content."""
    return """
schema_version: 1

service:
  model: "gemini-test-model"
  timeout_seconds: 10

retry:
  max_attempts: 3
  base_delay_seconds: 0.5
  max_jitter_seconds: 0.25
"""


@pytest.fixture
def sample_config() -> AppConfig:
    """Return an AppConfig with default settings."""
    return AppConfig()


@pytest.fixture
def config_file(temp_config_dir: Path, sample_config_yaml: str) -> Path:
    """Create a temporary config file with valid content."""
    config_path = temp_config_dir / "config.yaml"
    config_path.write_text(sample_config_yaml)
    return config_path


@pytest.fixture
def set_config_env(config_file: Path) -> Generator[None, None, None]:
    """Set the CATEGORIZER_CONFIG_PATH environment variable."""
    old_value = os.environ.get("CATEGORIZER_CONFIG_PATH")
    os.environ["CATEGORIZER_CONFIG_PATH"] = str(config_file)
    yield
    if old_value is None:
        del os.environ["CATEGORIZER_CONFIG_PATH"]
    else:
        os.environ["CATEGORIZER_CONFIG_PATH"] = old_value
