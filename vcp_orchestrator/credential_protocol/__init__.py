"""Public API for credential_protocol."""
from __future__ import annotations

from .accumulators import AccumulatorWitnessManager, BatchResult
from .config import EngineConfig
from .exceptions import (
    BackendError,
    ConfigurationError,
    CryptographicError,
    OrchestratorError,
    ProofWarningError,
)
from .factory import get_proof_engine
from .interfaces import ProofEngine
from .proof import ProofOrchestrator
from .requirements import (
    CredentialRequirements,
    EqInfo,
    InAccumInfo,
    IndexAndLabel,
    InRangeInfo,
)
from .shared_params import ParamKind, SharedParameterRegistry
from .signer import BlindSigningSession, SignerWorkflow
from .types import (
    AttributeSet,
    ClaimType,
    DecryptionVerified,
    DecryptKey,
    DecryptRequest,
    DVInt,
    DVText,
    IssuanceResult,
    KnownUnimplemented,
    ProofArtifact,
    SignatureAndRelatedData,
    VerificationReport,
)
from .variants import VARIANTS, ProofSystemVariant, get_variant
from .verification import VerificationOrchestrator

__all__ = [
    "AccumulatorWitnessManager",
    "AttributeSet",
    "BackendError",
    "BatchResult",
    "BlindSigningSession",
    "ClaimType",
    "ConfigurationError",
    "CredentialRequirements",
    "CryptographicError",
    "DecryptionVerified",
    "DecryptKey",
    "DecryptRequest",
    "DVInt",
    "DVText",
    "EngineConfig",
    "EqInfo",
    "InAccumInfo",
    "IndexAndLabel",
    "InRangeInfo",
    "IssuanceResult",
    "KnownUnimplemented",
    "OrchestratorError",
    "ParamKind",
    "ProofArtifact",
    "ProofEngine",
    "ProofOrchestrator",
    "ProofSystemVariant",
    "ProofWarningError",
    "SharedParameterRegistry",
    "SignatureAndRelatedData",
    "SignerWorkflow",
    "VARIANTS",
    "VerificationOrchestrator",
    "VerificationReport",
    "get_proof_engine",
    "get_variant",
]
