"""
Proof engine factory.

``EngineConfig.engine`` names the engine; its class is imported from
``ENGINE_REGISTRY`` only when selected, so the mock engine never imports the
HTTP stack and vice versa.
"""

from __future__ import annotations

import importlib
import logging

from .config import ENGINE_REGISTRY, EngineConfig
from .interfaces import ProofEngine

log = logging.getLogger(__name__)


def _load_engine_class(engine_name: str) -> type[ProofEngine]:
    import_path = ENGINE_REGISTRY[engine_name]
    module_path, _, class_name = import_path.rpartition(".")

    try:
        module = importlib.import_module(module_path)
    except ModuleNotFoundError as exc:
        raise ImportError(
            f"Unable to import engine module {module_path!r} for {engine_name!r}"
        ) from exc

    engine_cls = getattr(module, class_name, None)
    if not isinstance(engine_cls, type) or not issubclass(engine_cls, ProofEngine):
        raise TypeError(f"{import_path!r} is not a ProofEngine class")

    return engine_cls


def get_proof_engine(config: EngineConfig | None = None) -> ProofEngine:
    """
    Open a new engine handle for ``config.engine``.

    Args:
        config: Engine choice and settings; defaults to ``EngineConfig()``,
            i.e. the mock engine.

    Returns:
        ProofEngine: New engine instance owning ``config``.

    Raises:
        ImportError: If the engine module cannot be imported.
        TypeError: If the registry entry is not a ProofEngine class.
    """
    config = config or EngineConfig()
    engine_cls = _load_engine_class(config.engine)
    log.debug(f"Opening {config.engine} engine ({engine_cls.__name__}, {config.zkp_lib})")
    return engine_cls(config)
