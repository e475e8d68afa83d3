"""Shared pytest fixtures for mediator tests."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mediator.bridge.gateway import MediationGateway
from mediator.bridge.schemas import RequestKind
from mediator.bridge.store import PendingRequestStore
from mediator.core.config import Settings
from mediator.runs.live_status import LiveStatusFeed


class GatewayClient:
    """MediationClient that calls a gateway in-process instead of over HTTP."""

    def __init__(self, gateway: MediationGateway):
        self.gateway = gateway
        self.calls: list[tuple] = []
        self.request_ids: list[str] = []
        # Optional hook(status) run when a list call arrives, before the query
        self.before_list = None
        # Optional hook(status, result) run after each list call, before it returns
        self.on_list = None

    async def notify(self, kind, payload, correlation_id) -> str:
        self.calls.append(("notify", RequestKind(kind)))
        request_id = self.gateway.notify(kind, payload, correlation_id)
        self.request_ids.append(request_id)
        return request_id

    async def list_requests(self, correlation_id, status=None):
        self.calls.append(("list", status))
        if self.before_list is not None:
            self.before_list(status)
        result = self.gateway.list(correlation_id=correlation_id, status=status)
        if self.on_list is not None:
            self.on_list(status, result)
        return result

    def phase_calls(self, status) -> int:
        return sum(1 for call in self.calls if call == ("list", status))


class FakeClock:
    """Monotonic clock that only moves when the waiter sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = 0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps += 1
        self.now += seconds


@pytest.fixture
def store() -> PendingRequestStore:
    """Create a fresh, empty pending request store."""
    return PendingRequestStore()


@pytest.fixture
def gateway(store: PendingRequestStore) -> MediationGateway:
    return MediationGateway(store)


@pytest.fixture
def feed() -> LiveStatusFeed:
    return LiveStatusFeed()


@pytest.fixture
def gateway_client(gateway: MediationGateway) -> GatewayClient:
    return GatewayClient(gateway)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def permission_payload() -> dict:
    """A permission request payload in wire format."""
    return {"toolName": "edit_file", "toolInput": {"path": "src/app.py", "new_string": "x = 1"}}


@pytest.fixture
def question_payload() -> dict:
    """A two-question payload, the second one multi-select."""
    return {
        "questions": [
            {
                "question": "What is your preferred framework?",
                "header": "Framework",
                "options": [
                    {"label": "React", "description": "A JavaScript library"},
                    {"label": "Vue", "description": "The Progressive JavaScript Framework"},
                ],
                "multiSelect": False,
            },
            {
                "question": "Which linters should run?",
                "header": "Linters",
                "options": [{"label": "a"}, {"label": "b"}, {"label": "c"}],
                "multiSelect": True,
            },
        ]
    }


@pytest.fixture
def app_settings(tmp_path: Path) -> Settings:
    """Settings pointing the durable store at a temporary SQLite file."""
    return Settings(
        data_dir=tmp_path / "data",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'mediator-test.db'}",
        watchdog_interval_seconds=3600,
    )


@pytest.fixture
def client(app_settings: Settings):
    """TestClient over a freshly built app (lifespan included)."""
    from main import create_app

    with TestClient(create_app(app_settings)) as test_client:
        yield test_client


@pytest.fixture
def env_override(monkeypatch):
    """Helper fixture to override environment variables."""

    def _override(key: str, value: str | None):
        if value is None:
            monkeypatch.delenv(key, raising=False)
        else:
            monkeypatch.setenv(key, value)

    return _override
