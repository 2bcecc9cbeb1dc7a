from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from dotenv import load_dotenv

# Load the test environment FIRST, before any llmrouter imports: the settings
# singleton is built at import time.
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env.test")

from llmrouter.main import app  # noqa: E402
from llmrouter.services.flow_storage import FlowStorage, MemoryStorage, get_flow_storage  # noqa: E402
from llmrouter.utils.dependencies import get_client_resolver  # noqa: E402
from tests.fakes import FakeLLMClient, FakeResolver  # noqa: E402


@pytest.fixture
def fake_llm_client():
    return FakeLLMClient()


@pytest.fixture
def memory_flow_storage():
    return FlowStorage(MemoryStorage(prefix="test_flows_"))


@pytest.fixture(scope="function")
def test_client(fake_llm_client, memory_flow_storage):
    """
    Provides a TestClient whose LLM calls go to FakeLLMClient and whose saved
    flows live in memory.
    """
    resolver = FakeResolver(fake_llm_client)
    app.dependency_overrides[get_client_resolver] = lambda: resolver
    app.dependency_overrides[get_flow_storage] = lambda: memory_flow_storage

    with TestClient(app) as client:
        client.resolver = resolver
        yield client

    app.dependency_overrides.clear()
