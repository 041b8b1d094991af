import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from cmscli.domain.models.request import RawResponse, RequestDescriptor
from cmscli.infrastructure.config.settings import clear_test_config, set_config_for_testing


class ScriptedSender:
    """Transport stand-in that replays a fixed list of responses or exceptions."""

    def __init__(self, outcomes: List[Any]):
        self.outcomes = list(outcomes)
        self.calls: List[RequestDescriptor] = []

    async def __call__(self, descriptor: RequestDescriptor) -> RawResponse:
        self.calls.append(descriptor)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def response(status: int, body: Any = None, headers: Optional[Dict[str, str]] = None) -> RawResponse:
    text = "" if body is None else (body if isinstance(body, str) else json.dumps(body))
    return RawResponse(status=status, headers=headers or {}, text=text)


class RecordingSleep:
    """Async sleep replacement that records the requested delays (in seconds)."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keeps tests independent of the developer's environment and config files."""
    for name in (
        "CMSCLI_SERVICE_DOMAIN",
        "CMSCLI_API_KEY",
        "CMSCLI_CONTENT_MOCK_FILE",
        "CMSCLI_CONTENT_ALL_MAX_ITEMS",
        "CMSCLI_CONTENT_API_BASE_URL",
        "CMSCLI_MANAGEMENT_API_BASE_URL",
        "CMSCLI_TIMEOUT_MS",
        "CMSCLI_RETRY",
        "CMSCLI_RETRY_MAX_DELAY_MS",
        "CMSCLI_OUTPUT",
        "CMSCLI_LOGGING_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    # Only the command output should reach stdout/stderr in CLI tests
    set_config_for_testing({"logging.level": "CRITICAL"})
    yield
    clear_test_config()


@pytest.fixture
def mock_store(tmp_path: Path):
    """Factory writing a file-backed content store and returning its path."""

    def _write(
        endpoints: Optional[Dict[str, Any]] = None,
        schemas: Optional[Dict[str, Any]] = None,
        next_id: int = 1,
        drafts: Optional[Dict[str, Any]] = None,
    ) -> Path:
        path = tmp_path / "mock-content-store.json"
        document: Dict[str, Any] = {"nextId": next_id, "endpoints": endpoints or {}}
        if schemas is not None:
            document["schemas"] = schemas
        if drafts is not None:
            document["drafts"] = drafts
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_json(tmp_path: Path):
    """Factory writing a JSON document into the temporary directory."""

    def _write(name: str, document: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def cli_env():
    """Environment for CLI runs against a file-backed store."""

    def _env(store_path: Optional[Path] = None) -> Dict[str, str]:
        env = {"CMSCLI_SERVICE_DOMAIN": "mock", "CMSCLI_API_KEY": "mock-key"}
        if store_path is not None:
            env["CMSCLI_CONTENT_MOCK_FILE"] = str(store_path)
        return env

    return _env


@pytest.fixture
def scripted_sender():
    """Factory building a ScriptedSender from a list of outcomes."""
    return ScriptedSender


@pytest.fixture
def make_response():
    """Factory building RawResponse objects: ``make_response(status, body, headers)``."""
    return response
