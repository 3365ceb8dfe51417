"""
Configuration for credential proof orchestration.

Module level constants describe protocol defaults. ``EngineConfig`` is the
value passed once to an engine handle at construction; nothing reads
connection settings from global state after that point.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .exceptions import ConfigurationError

# ============================================================================
# PROOF SERVER CONNECTION
# ============================================================================

DEFAULT_ENDPOINT = "http://127.0.0.1:8080"
API_PREFIX = "/vcp"

# Verifiable encryption and large key generation may run for minutes on the
# server side; a client timeout would abort work the server already committed.
DEFAULT_TIMEOUT: Optional[float] = None

# ============================================================================
# PROOF ENGINES
# ============================================================================

# Engine name -> import path of its class.
ENGINE_REGISTRY: Dict[str, str] = {
    "mock": "vcp_orchestrator.credential_protocol.adapters.mock_engine.MockProofEngine",
    "http": "vcp_orchestrator.network.vcphttp.client.HttpProofEngine",
}
DEFAULT_ENGINE = "mock"

# ============================================================================
# PROOF SYSTEMS
# ============================================================================

DEFAULT_ZKP_LIB = "DNC"
DEFAULT_RNG_SEED = 0

# ============================================================================
# ARTIFACT SERIALIZATION
# ============================================================================

SERIALIZATION_FORMAT = "CBOR"
ARTIFACT_VERSION = 1  # Increment for breaking changes

# ============================================================================
# ENVIRONMENT
# ============================================================================

ENV_ENGINE = "VCP_PROOF_ENGINE"
ENV_ENDPOINT = "VCP_ENDPOINT"
ENV_ZKP_LIB = "VCP_ZKP_LIB"
ENV_TIMEOUT = "VCP_TIMEOUT"
ENV_RNG_SEED = "VCP_RNG_SEED"

_CONFIG_KEYS = ("engine", "endpoint", "zkp_lib", "timeout", "rng_seed")


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine choice, connection and proof-system settings for one engine handle.

    Attributes:
        endpoint: Base URL of the proof server.
        zkp_lib: Proof system variant name (see ``variants.VARIANTS``).
        timeout: Client timeout in seconds; None waits indefinitely.
        rng_seed: Seed forwarded with every randomized engine call.
        engine: Registered engine name, a key of ``ENGINE_REGISTRY``.
    """

    endpoint: str = DEFAULT_ENDPOINT
    zkp_lib: str = DEFAULT_ZKP_LIB
    timeout: Optional[float] = DEFAULT_TIMEOUT
    rng_seed: int = DEFAULT_RNG_SEED
    engine: str = DEFAULT_ENGINE

    def __post_init__(self) -> None:
        if not isinstance(self.engine, str) or self.engine not in ENGINE_REGISTRY:
            raise ConfigurationError(
                f"Invalid engine name: {self.engine!r}. "
                f"Valid options: {', '.join(sorted(ENGINE_REGISTRY))}"
            )
        if not isinstance(self.endpoint, str) or not self.endpoint.startswith(
            ("http://", "https://")
        ):
            raise ConfigurationError(f"Invalid endpoint: {self.endpoint!r}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be positive or None")
        if isinstance(self.rng_seed, bool) or not isinstance(self.rng_seed, int):
            raise ConfigurationError("rng_seed must be an integer")
        if self.rng_seed < 0:
            raise ConfigurationError("rng_seed must be non-negative")

    def with_overrides(self, **changes: Any) -> "EngineConfig":
        """Return a copy with non-None ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "EngineConfig":
        unknown = set(data) - set(_CONFIG_KEYS)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(sorted(unknown))}"
            )
        return cls(**data)

    @classmethod
    def from_env(cls, base: Optional["EngineConfig"] = None) -> "EngineConfig":
        """Apply ``VCP_*`` environment variables on top of ``base``."""
        config = base or cls()
        timeout_raw = os.getenv(ENV_TIMEOUT)
        seed_raw = os.getenv(ENV_RNG_SEED)
        try:
            timeout = float(timeout_raw) if timeout_raw else None
            seed = int(seed_raw) if seed_raw else None
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric environment value: {exc}") from exc
        return config.with_overrides(
            engine=os.getenv(ENV_ENGINE) or None,
            endpoint=os.getenv(ENV_ENDPOINT) or None,
            zkp_lib=os.getenv(ENV_ZKP_LIB) or None,
            timeout=timeout,
            rng_seed=seed,
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EngineConfig":
        """
        Load settings from a YAML file.

        The file may hold the keys at top level or under an ``engine`` section.
        A top-level ``engine`` that is not a mapping is the engine name.
        """
        with open(path, "r", encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh) or {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"{path}: expected a mapping")
        section = loaded.get("engine")
        if not isinstance(section, dict):
            section = loaded
        return cls.from_mapping(section)


# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        AssertionError: If configuration is invalid
    """
    assert DEFAULT_ENGINE in ENGINE_REGISTRY, "Default engine must be registered"
    assert DEFAULT_ENDPOINT.startswith("http"), "Endpoint must be an HTTP URL"
    assert API_PREFIX.startswith("/"), "API prefix must be absolute"
    assert DEFAULT_TIMEOUT is None, "Engine calls must not time out by default"
    assert SERIALIZATION_FORMAT == "CBOR", "Unsupported serialization format"
    assert ARTIFACT_VERSION >= 1, "Invalid artifact version"
    return True


# Auto-validate on import
validate_config()
