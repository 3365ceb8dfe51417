"""
Unit tests for engine selection through EngineConfig and lazy imports.
"""

from __future__ import annotations

import importlib
import sys

import pytest

from vcp_orchestrator.credential_protocol import factory
from vcp_orchestrator.credential_protocol.config import ENGINE_REGISTRY, ENV_ENGINE, EngineConfig
from vcp_orchestrator.credential_protocol.exceptions import ConfigurationError
from vcp_orchestrator.credential_protocol.interfaces import ProofEngine


def _get_import_target(engine_name: str) -> tuple[str, str]:
    module_path, _, class_name = ENGINE_REGISTRY[engine_name].rpartition(".")
    return module_path, class_name


@pytest.fixture(autouse=True)
def clear_engine_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ENV_ENGINE, raising=False)


def _assert_engine_interface(engine: ProofEngine) -> None:
    assert isinstance(engine, ProofEngine)
    assert callable(getattr(engine, "create_proof", None))
    assert callable(getattr(engine, "verify_proof", None))
    assert callable(getattr(engine, "verify_decryption", None))


def test_default_engine_is_mock() -> None:
    engine = factory.get_proof_engine()
    _assert_engine_interface(engine)
    assert type(engine).__name__ == "MockProofEngine"


def test_config_selects_engine() -> None:
    with factory.get_proof_engine(EngineConfig(engine="http")) as engine:
        _assert_engine_interface(engine)
        assert type(engine).__name__ == "HttpProofEngine"


def test_env_var_selects_engine(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_ENGINE, "http")
    with factory.get_proof_engine(EngineConfig.from_env()) as engine:
        assert type(engine).__name__ == "HttpProofEngine"


def test_explicit_override_beats_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_ENGINE, "http")
    config = EngineConfig.from_env().with_overrides(engine="mock")
    assert type(factory.get_proof_engine(config)).__name__ == "MockProofEngine"


def test_invalid_engine_name_raises() -> None:
    with pytest.raises(ConfigurationError, match="Invalid engine name: 'invalid-engine'"):
        EngineConfig(engine="invalid-engine")


def test_config_is_passed_to_engine() -> None:
    engine = factory.get_proof_engine(EngineConfig(zkp_lib="AC2C_PS"))
    assert engine.variant.name == "AC2C_PS"


def test_registry_entry_must_be_engine_class(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(
        ENGINE_REGISTRY, "mock", "vcp_orchestrator.credential_protocol.config.EngineConfig"
    )
    with pytest.raises(TypeError, match="is not a ProofEngine class"):
        factory.get_proof_engine()


def test_registry_entry_module_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(ENGINE_REGISTRY, "mock", "vcp_orchestrator.no_such_module.Engine")
    with pytest.raises(ImportError, match="Unable to import engine module"):
        factory.get_proof_engine()


def test_factory_import_is_lazy() -> None:
    module_path, _ = _get_import_target("http")
    saved_module = sys.modules.pop(module_path, None)
    try:
        importlib.reload(factory)
        assert module_path not in sys.modules
    finally:
        if saved_module is not None:
            sys.modules[module_path] = saved_module


def test_engine_module_imported_on_selection() -> None:
    module_path, _ = _get_import_target("http")
    saved_module = sys.modules.pop(module_path, None)
    try:
        with factory.get_proof_engine(EngineConfig(engine="http")) as engine:
            _assert_engine_interface(engine)
        assert module_path in sys.modules
    finally:
        if saved_module is not None:
            sys.modules[module_path] = saved_module
