"""
Common types for credential proof orchestration.

This module provides:
1. ClaimType / DVText / DVInt - attribute schema and values
2. Opaque engine material (keys, signatures, witnesses, proofs)
3. Issuance, accumulator and authority result structures
4. Warnings, decrypt requests/responses and the ProofArtifact with CBOR
   serialization

Opaque material is whatever string the proof engine produced; the
orchestrator only moves it between protocol steps and never inspects it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional, Tuple, Union

import cbor2

from .config import ARTIFACT_VERSION
from .exceptions import ConfigurationError, CryptographicError

# ============================================================================
# ATTRIBUTE VALUES
# ============================================================================

_MAX_INT_VALUE = 2**64 - 1


class ClaimType(str, Enum):
    """How an attribute may be used in a proof."""

    TEXT = "CTText"
    INT = "CTInt"
    ENCRYPTABLE_TEXT = "CTEncryptableText"
    ACCUMULATOR_MEMBER = "CTAccumulatorMember"

    def accepts(self, value: "DataValue") -> bool:
        if self is ClaimType.INT:
            return isinstance(value, DVInt)
        return isinstance(value, DVText)

    @property
    def reveal_concern(self) -> Optional[str]:
        """Why disclosing an attribute of this type leaks more than intended."""
        if self is ClaimType.ENCRYPTABLE_TEXT:
            return "encryptable"
        if self is ClaimType.ACCUMULATOR_MEMBER:
            return "an accumulator member"
        return None


@dataclass(frozen=True)
class DVText:
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ConfigurationError(f"DVText requires str, got {type(self.value).__name__}")

    @property
    def tag(self) -> str:
        return "DVText"


@dataclass(frozen=True)
class DVInt:
    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ConfigurationError(f"DVInt requires int, got {type(self.value).__name__}")
        if not 0 <= self.value <= _MAX_INT_VALUE:
            raise ConfigurationError(f"DVInt out of range: {self.value}")

    @property
    def tag(self) -> str:
        return "DVInt"


DataValue = Union[DVText, DVInt]


def data_value(raw: Union[str, int, DVText, DVInt]) -> DataValue:
    """Wrap a plain str/int as a DataValue; DataValues pass through."""
    if isinstance(raw, (DVText, DVInt)):
        return raw
    if isinstance(raw, str):
        return DVText(raw)
    return DVInt(raw)


def value_to_cbor(value: DataValue) -> list:
    return [value.tag, value.value]


def value_from_cbor(obj: Any) -> DataValue:
    if not isinstance(obj, list) or len(obj) != 2:
        raise CryptographicError("Invalid data value encoding")
    tag, contents = obj
    if tag == "DVText":
        return DVText(contents)
    if tag == "DVInt":
        return DVInt(contents)
    raise CryptographicError(f"Unknown data value tag: {tag!r}")


@dataclass(frozen=True)
class AttributeSet:
    """
    Ordered attribute values of one credential with their claim types.

    Index positions are stable; every requirement refers to them.
    """

    values: Tuple[DataValue, ...]
    claim_types: Tuple[ClaimType, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(data_value(v) for v in self.values))
        object.__setattr__(
            self, "claim_types", tuple(ClaimType(c) for c in self.claim_types)
        )

    def __len__(self) -> int:
        return len(self.values)

    def check_types(self) -> None:
        """
        Raises:
            ConfigurationError: If counts differ or a value has the wrong kind.
        """
        if len(self.values) != len(self.claim_types):
            raise ConfigurationError(
                f"{len(self.values)} values but {len(self.claim_types)} claim types"
            )
        for idx, (value, claim_type) in enumerate(zip(self.values, self.claim_types)):
            if not claim_type.accepts(value):
                raise ConfigurationError(
                    f"index {idx}: {value.tag} is not valid for {claim_type.value}"
                )

    def subset(self, indices) -> Dict[int, DataValue]:
        return {idx: self.values[idx] for idx in sorted(indices)}


# ============================================================================
# OPAQUE ENGINE MATERIAL
# ============================================================================


@dataclass(frozen=True)
class Opaque:
    """Engine-produced material carried between protocol steps."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ConfigurationError(f"{type(self).__name__} must wrap a str")

    def __repr__(self) -> str:
        shown = self.value if len(self.value) <= 24 else f"{self.value[:24]}..."
        return f"{type(self).__name__}({shown!r})"


class SecretOpaque(Opaque):
    def __repr__(self) -> str:
        return f"{type(self).__name__}(<redacted>)"


class SignerPublicSetupData(Opaque): ...
class SignerSecretData(SecretOpaque): ...
class BlindInfoForSigner(Opaque): ...
class InfoForUnblinding(SecretOpaque): ...
class Signature(Opaque): ...
class BlindSignature(Opaque): ...
class AccumulatorPublicData(Opaque): ...
class AccumulatorSecretData(SecretOpaque): ...
class Accumulator(Opaque): ...
class AccumulatorElement(Opaque): ...
class Witness(Opaque): ...
class WitnessUpdateInfo(Opaque): ...
class MembershipProvingKey(Opaque): ...
class RangeProofProvingKey(Opaque): ...
class AuthorityPublicData(Opaque): ...
class AuthoritySecretData(SecretOpaque): ...
class AuthorityDecryptionKey(SecretOpaque): ...
class Proof(Opaque): ...
class DecryptionProof(Opaque): ...


# ============================================================================
# ISSUANCE
# ============================================================================


@dataclass(frozen=True)
class SignerPublicData:
    setup_data: SignerPublicSetupData
    schema: Tuple[ClaimType, ...]
    blinded_indices: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "schema", tuple(ClaimType(c) for c in self.schema))
        object.__setattr__(self, "blinded_indices", tuple(sorted(self.blinded_indices)))


@dataclass(frozen=True)
class SignerData:
    public: SignerPublicData
    secret: SignerSecretData


@dataclass(frozen=True)
class BlindSigningInfo:
    """Single-use material of one blind signing session."""

    blind_info_for_signer: BlindInfoForSigner
    info_for_unblinding: InfoForUnblinding


@dataclass(frozen=True)
class SignatureAndRelatedData:
    """
    A holder's credential: signature, signed values and attached witnesses.

    ``accumulator_witnesses`` maps an accumulator-constraint index to the
    witness satisfying it. Instances are immutable; ``attach_witness`` and
    ``refresh_witness`` return updated copies.
    """

    signature: Signature
    values: Tuple[DataValue, ...]
    accumulator_witnesses: Mapping[int, Witness] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(data_value(v) for v in self.values))
        object.__setattr__(self, "accumulator_witnesses", dict(self.accumulator_witnesses))

    def attach_witness(self, index: int, witness: Witness) -> "SignatureAndRelatedData":
        """
        Raises:
            ConfigurationError: If the index is out of range or already holds
                a witness.
        """
        if not 0 <= index < len(self.values):
            raise ConfigurationError(f"witness index {index} out of range")
        if index in self.accumulator_witnesses:
            raise ConfigurationError(f"witness already attached at index {index}")
        witnesses = dict(self.accumulator_witnesses)
        witnesses[index] = witness
        return SignatureAndRelatedData(self.signature, self.values, witnesses)

    def refresh_witness(self, index: int, witness: Witness) -> "SignatureAndRelatedData":
        if index not in self.accumulator_witnesses:
            raise ConfigurationError(f"no witness attached at index {index}")
        witnesses = dict(self.accumulator_witnesses)
        witnesses[index] = witness
        return SignatureAndRelatedData(self.signature, self.values, witnesses)


@dataclass(frozen=True)
class IssuanceResult:
    signer_data: SignerData
    signature: Signature

    @property
    def signer_public_data(self) -> SignerPublicData:
        return self.signer_data.public

    def related_data(self, values) -> SignatureAndRelatedData:
        return SignatureAndRelatedData(self.signature, tuple(values))


# ============================================================================
# ACCUMULATORS AND AUTHORITIES
# ============================================================================


@dataclass(frozen=True)
class AccumulatorData:
    public: AccumulatorPublicData
    secret: AccumulatorSecretData


@dataclass(frozen=True)
class AccumulatorState:
    """Accumulator value, its data, and the batch sequence number."""

    data: AccumulatorData
    accumulator: Accumulator
    seq_num: int = 0


@dataclass(frozen=True)
class AddRemoveResponse:
    witness_update_info: WitnessUpdateInfo
    witnesses_for_new: Mapping[str, Witness]
    accumulator_data: AccumulatorData
    accumulator: Accumulator


@dataclass(frozen=True)
class AuthorityData:
    public: AuthorityPublicData
    secret: AuthoritySecretData
    decryption_key: AuthorityDecryptionKey


# ============================================================================
# WARNINGS
# ============================================================================


@dataclass(frozen=True)
class UnsupportedFeature:
    detail: str

    def __str__(self) -> str:
        return f"unsupported feature: {self.detail}"


@dataclass(frozen=True)
class RevealPrivacyWarning:
    credential_label: str
    index: int
    detail: str

    def __str__(self) -> str:
        return f"{self.credential_label}[{self.index}]: {self.detail}"


@dataclass(frozen=True)
class ConstraintWarning:
    """A requirement the engine could not satisfy for the given credentials."""

    credential_label: str
    index: int
    detail: str

    def __str__(self) -> str:
        return f"{self.credential_label}[{self.index}] constraint failed: {self.detail}"


ProofWarning = Union[UnsupportedFeature, RevealPrivacyWarning, ConstraintWarning]


def warning_to_cbor(warning: ProofWarning) -> list:
    if isinstance(warning, UnsupportedFeature):
        return ["UnsupportedFeature", warning.detail]
    return [type(warning).__name__, warning.credential_label, warning.index, warning.detail]


def warning_from_cbor(obj: Any) -> ProofWarning:
    if not isinstance(obj, list) or not obj:
        raise CryptographicError("Invalid warning encoding")
    kind = obj[0]
    if kind == "UnsupportedFeature" and len(obj) == 2:
        return UnsupportedFeature(obj[1])
    if kind == "RevealPrivacyWarning" and len(obj) == 4:
        return RevealPrivacyWarning(obj[1], obj[2], obj[3])
    if kind == "ConstraintWarning" and len(obj) == 4:
        return ConstraintWarning(obj[1], obj[2], obj[3])
    raise CryptographicError(f"Unknown warning kind: {kind!r}")


# ============================================================================
# DECRYPTION
# ============================================================================


class DecryptKey(NamedTuple):
    """Flat (credential, index, authority) key of decrypt requests/responses."""

    credential_label: str
    index: int
    authority_label: str


@dataclass(frozen=True)
class DecryptRequest:
    authority_secret_data: AuthoritySecretData
    authority_decryption_key: AuthorityDecryptionKey

    @classmethod
    def for_authority(cls, authority: AuthorityData) -> "DecryptRequest":
        return cls(authority.secret, authority.decryption_key)


@dataclass(frozen=True)
class DecryptResponse:
    value: str
    decryption_proof: DecryptionProof


# ============================================================================
# PROOFS
# ============================================================================


@dataclass(frozen=True)
class DataForVerifier:
    """Revealed values (label -> index -> value) and the proof."""

    revealed: Mapping[str, Mapping[int, DataValue]]
    proof: Proof

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "revealed",
            {label: dict(vals) for label, vals in self.revealed.items()},
        )

    def revealed_indices(self) -> Dict[str, Tuple[int, ...]]:
        """Non-empty revealed index sets per credential label."""
        return {
            label: tuple(sorted(vals))
            for label, vals in self.revealed.items()
            if vals
        }


@dataclass(frozen=True)
class ProofArtifact:
    """
    Output of proof creation: warnings plus the data handed to a verifier.

    Serialization is CBOR with a version field so a holder can ship the
    artifact to a verifier process.
    """

    warnings: Tuple[ProofWarning, ...]
    data_for_verifier: DataForVerifier

    def __post_init__(self) -> None:
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def serialize(self) -> bytes:
        """
        Serialize artifact to CBOR bytes.

        Raises:
            CryptographicError: If serialization fails
        """
        try:
            data = {
                "v": ARTIFACT_VERSION,
                "warnings": [warning_to_cbor(w) for w in self.warnings],
                "revealed": {
                    label: {idx: value_to_cbor(val) for idx, val in vals.items()}
                    for label, vals in self.data_for_verifier.revealed.items()
                },
                "proof": self.data_for_verifier.proof.value,
            }
            return cbor2.dumps(data)
        except Exception as e:
            raise CryptographicError(f"Failed to serialize proof artifact: {e}") from e

    @classmethod
    def deserialize(cls, data: bytes) -> "ProofArtifact":
        """
        Deserialize artifact from CBOR bytes.

        Raises:
            CryptographicError: If deserialization fails or the version is
                unsupported
        """
        try:
            obj = cbor2.loads(data)
        except Exception as e:
            raise CryptographicError(f"Failed to deserialize proof artifact: {e}") from e
        if not isinstance(obj, dict):
            raise CryptographicError("Proof artifact must be a CBOR map")
        if obj.get("v") != ARTIFACT_VERSION:
            raise CryptographicError(f"Unsupported artifact version: {obj.get('v')!r}")
        try:
            revealed = {
                label: {int(idx): value_from_cbor(val) for idx, val in vals.items()}
                for label, vals in obj["revealed"].items()
            }
            return cls(
                warnings=tuple(warning_from_cbor(w) for w in obj["warnings"]),
                data_for_verifier=DataForVerifier(revealed, Proof(obj["proof"])),
            )
        except (KeyError, TypeError, AttributeError, ValueError, ConfigurationError) as e:
            raise CryptographicError(f"Malformed proof artifact: {e}") from e


# ============================================================================
# VERIFICATION OUTCOMES
# ============================================================================


@dataclass(frozen=True)
class VerificationResult:
    warnings: Tuple[ProofWarning, ...]
    decrypt_responses: Mapping[DecryptKey, DecryptResponse]

    def __post_init__(self) -> None:
        object.__setattr__(self, "warnings", tuple(self.warnings))
        object.__setattr__(self, "decrypt_responses", dict(self.decrypt_responses))


@dataclass(frozen=True)
class DecryptionVerified:
    warnings: Tuple[ProofWarning, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.warnings


@dataclass(frozen=True)
class KnownUnimplemented:
    """Catalogued engine gap: decryption verification is not available."""

    variant: str
    detail: str

    @property
    def ok(self) -> bool:
        return False


DecryptionOutcome = Union[DecryptionVerified, KnownUnimplemented]


@dataclass(frozen=True)
class VerificationReport:
    """Proof verification plus the optional decryption verification step."""

    result: VerificationResult
    decryption: Optional[DecryptionOutcome] = None

    @property
    def escalated(self) -> bool:
        return self.decryption is not None
