"""
Shared fixtures for end-to-end runs of the demo credentials.
"""

import pytest

from vcp_orchestrator.credential_protocol.adapters.mock_engine import MockProofEngine
from vcp_orchestrator.scenarios import build_session


@pytest.fixture
def engine():
    with MockProofEngine() as engine:
        yield engine


@pytest.fixture
def session(engine):
    return build_session(engine)


@pytest.fixture(autouse=True)
def clean_engine_env(monkeypatch):
    for name in ("VCP_PROOF_ENGINE", "VCP_ENDPOINT", "VCP_ZKP_LIB", "VCP_TIMEOUT", "VCP_RNG_SEED"):
        monkeypatch.delenv(name, raising=False)
