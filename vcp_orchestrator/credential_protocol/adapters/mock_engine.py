"""
In-process simulated proof engine.

Honours the full engine contract, including each proof system's catalogued
limitations, so orchestration can be exercised without a proof server.

Notes:
- It does NOT provide real cryptographic security. Signatures, witnesses
  and proofs are keyed HMAC tags under an engine master key; anyone holding
  the engine object can forge them.
- Verifiable encryption is real (X25519 + HKDF + AES-GCM) so decrypt
  responses genuinely recover the signed plaintext.
- All randomness is derived from the configured rng seed, so two engines
  with the same seed and call sequence produce identical material.
"""

from __future__ import annotations

import hashlib
import hmac
import itertools
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import cbor2
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..config import EngineConfig
from ..exceptions import BackendError
from ..interfaces import IndexedValues, ProofEngine, SharedParams
from ..requirements import (
    RequirementSet,
    equality_classes,
    reveal_privacy_warnings,
)
from ..shared_params import ParamKind, SharedParam
from ..types import (
    Accumulator,
    AccumulatorData,
    AccumulatorElement,
    AccumulatorPublicData,
    AccumulatorSecretData,
    AddRemoveResponse,
    AuthorityData,
    AuthorityDecryptionKey,
    AuthorityPublicData,
    AuthoritySecretData,
    BlindInfoForSigner,
    BlindSignature,
    BlindSigningInfo,
    ClaimType,
    ConstraintWarning,
    DataForVerifier,
    DataValue,
    DecryptionProof,
    DecryptKey,
    DecryptRequest,
    DecryptResponse,
    DVInt,
    DVText,
    InfoForUnblinding,
    MembershipProvingKey,
    Opaque,
    Proof,
    ProofArtifact,
    ProofWarning,
    RangeProofProvingKey,
    Signature,
    SignatureAndRelatedData,
    SignerData,
    SignerPublicData,
    SignerPublicSetupData,
    SignerSecretData,
    UnsupportedFeature,
    VerificationResult,
    Witness,
    WitnessUpdateInfo,
    value_to_cbor,
)
from ..variants import ProofSystemVariant, get_variant

log = logging.getLogger(__name__)

_BAD_REQUEST = 400
_VE_INFO = b"vcp-mock-verifiable-encryption"


def _digest(*parts: Any) -> bytes:
    return hashlib.sha256(cbor2.dumps(list(parts))).digest()


def _mac(key: bytes, *parts: Any) -> bytes:
    return hmac.new(key, cbor2.dumps(list(parts)), hashlib.sha256).digest()


def _mac_ok(key: bytes, tag: Any, *parts: Any) -> bool:
    return isinstance(tag, bytes) and hmac.compare_digest(_mac(key, *parts), tag)


def _fail(message: str) -> BackendError:
    return BackendError(_BAD_REQUEST, message)


def _values_blob(values: Sequence[DataValue]) -> list:
    return [value_to_cbor(v) for v in values]


def _indexed_blob(indexed: IndexedValues) -> list:
    return [[idx, value_to_cbor(indexed[idx])] for idx in sorted(indexed)]


def _element_hash(value: str) -> bytes:
    return hashlib.sha256(b"accumulator-element|" + value.encode("utf-8")).digest()


class MockProofEngine(ProofEngine):
    """
    Simulated engine for tests and demos.

    Example:
        >>> engine = MockProofEngine(variant="DNC")
        >>> signer = engine.create_signer_data([ClaimType.TEXT])
        >>> sig = engine.sign([DVText("x")], signer)
    """

    _ENGINE_NAME = "MockProofEngine"

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        variant: Optional[str] = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._variant = get_variant(variant or self._config.zkp_lib)
        self._master = hashlib.sha256(
            f"vcp-mock|{self._variant.name}|{self._config.rng_seed}".encode("utf-8")
        ).digest()
        self._counter = itertools.count()

    @property
    def engine_name(self) -> str:
        return self._ENGINE_NAME

    @property
    def variant(self) -> ProofSystemVariant:
        return self._variant

    # ------------------------------------------------------------------
    # Opaque material encoding
    # ------------------------------------------------------------------

    def _fresh(self, purpose: str) -> bytes:
        return _mac(self._master, "rng", purpose, next(self._counter))

    @staticmethod
    def _encode(kind: str, payload: Dict[str, Any]) -> str:
        return cbor2.dumps({"k": kind, "p": payload}).hex()

    @staticmethod
    def _decode(kind: str, material: Opaque) -> Dict[str, Any]:
        try:
            obj = cbor2.loads(bytes.fromhex(material.value))
        except (ValueError, cbor2.CBORDecodeError) as exc:
            raise _fail(f"malformed {kind}: {exc}") from exc
        if not isinstance(obj, dict) or obj.get("k") != kind or not isinstance(obj.get("p"), dict):
            raise _fail(f"malformed {kind}")
        return obj["p"]

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def _signer_key(self, signer_id: str) -> bytes:
        return _mac(self._master, "signer-secret", signer_id)

    def _signer_id(self, public: SignerPublicData) -> str:
        return self._decode("signer-public", public.setup_data)["id"]

    def _check_signer(self, signer_data: SignerData) -> Tuple[str, bytes]:
        signer_id = self._signer_id(signer_data.public)
        secret = self._decode("signer-secret", signer_data.secret)
        sk = self._signer_key(signer_id)
        if secret.get("id") != signer_id or not hmac.compare_digest(secret.get("sk", b""), sk):
            raise _fail("signer secret data does not match signer public data")
        return signer_id, sk

    @staticmethod
    def _check_value_types(claim_types: Sequence[ClaimType], indexed: IndexedValues) -> None:
        for idx, value in indexed.items():
            if not 0 <= idx < len(claim_types):
                raise _fail(f"index {idx} out of range for {len(claim_types)} claim types")
            if not claim_types[idx].accepts(value):
                raise _fail(f"index {idx}: {value.tag} incompatible with {claim_types[idx].value}")

    def create_signer_data(
        self, claim_types: Sequence[ClaimType], blinded_indices: Sequence[int] = ()
    ) -> SignerData:
        schema = tuple(ClaimType(c) for c in claim_types)
        if not schema:
            raise _fail("createSignerData: no claim types")
        if len(set(blinded_indices)) != len(blinded_indices):
            raise _fail("createSignerData: duplicate blinded index")
        for idx in blinded_indices:
            if not 0 <= idx < len(schema):
                raise _fail(f"createSignerData: blinded index {idx} out of range")
        signer_id = self._fresh("signer").hex()
        public = SignerPublicData(
            SignerPublicSetupData(self._encode("signer-public", {"id": signer_id, "n": len(schema)})),
            schema,
            tuple(blinded_indices),
        )
        secret = SignerSecretData(
            self._encode("signer-secret", {"id": signer_id, "sk": self._signer_key(signer_id)})
        )
        return SignerData(public, secret)

    def _signature(self, signer_id: str, sk: bytes, values: Sequence[DataValue]) -> Signature:
        tag = _mac(sk, "signature", _values_blob(values))
        return Signature(self._encode("signature", {"id": signer_id, "t": tag}))

    def sign(self, values: Sequence[DataValue], signer_data: SignerData) -> Signature:
        signer_id, sk = self._check_signer(signer_data)
        schema = signer_data.public.schema
        if len(values) != len(schema):
            raise _fail(f"sign: {len(values)} values for {len(schema)} claim types")
        self._check_value_types(schema, dict(enumerate(values)))
        return self._signature(signer_id, sk, values)

    def create_blind_signing_info(
        self, signer_public_data: SignerPublicData, blinded: IndexedValues
    ) -> BlindSigningInfo:
        signer_id = self._signer_id(signer_public_data)
        if tuple(sorted(blinded)) != signer_public_data.blinded_indices:
            raise _fail(
                "createBlindSigningInfo: blinded indices "
                f"{sorted(blinded)} do not match signer's {list(signer_public_data.blinded_indices)}"
            )
        self._check_value_types(signer_public_data.schema, blinded)
        blinding = self._fresh("blinding")
        commitment = _digest(blinding, _indexed_blob(blinded))
        return BlindSigningInfo(
            BlindInfoForSigner(
                self._encode("blind-info", {"id": signer_id, "idx": sorted(blinded), "c": commitment})
            ),
            InfoForUnblinding(
                self._encode("unblinding", {"id": signer_id, "r": blinding, "c": commitment})
            ),
        )

    def sign_with_blinded_attributes(
        self,
        non_blinded: IndexedValues,
        blind_info_for_signer: BlindInfoForSigner,
        signer_data: SignerData,
    ) -> BlindSignature:
        signer_id, sk = self._check_signer(signer_data)
        info = self._decode("blind-info", blind_info_for_signer)
        if info["id"] != signer_id:
            raise _fail("signWithBlindedAttributes: blind info was created for another signer")
        schema = signer_data.public.schema
        blinded_idxs = set(info["idx"])
        if blinded_idxs != set(signer_data.public.blinded_indices):
            raise _fail("signWithBlindedAttributes: blinded indices do not match signer data")
        if blinded_idxs & set(non_blinded) or blinded_idxs | set(non_blinded) != set(range(len(schema))):
            raise _fail("signWithBlindedAttributes: indices do not cover the schema exactly once")
        self._check_value_types(schema, non_blinded)
        nb_blob = _indexed_blob(non_blinded)
        tag = _mac(sk, "blind-signature", info["c"], nb_blob)
        return BlindSignature(
            self._encode("blind-signature", {"id": signer_id, "c": info["c"], "nb": nb_blob, "t": tag})
        )

    def unblind_blinded_signature(
        self,
        claim_types: Sequence[ClaimType],
        blinded: IndexedValues,
        blind_signature: BlindSignature,
        info_for_unblinding: InfoForUnblinding,
    ) -> Signature:
        bsig = self._decode("blind-signature", blind_signature)
        unblinding = self._decode("unblinding", info_for_unblinding)
        signer_id = bsig["id"]
        if unblinding["id"] != signer_id or unblinding["c"] != bsig["c"]:
            raise _fail("unblindBlindedSignature: blind signature does not belong to this session")
        if _digest(unblinding["r"], _indexed_blob(blinded)) != unblinding["c"]:
            raise _fail("unblindBlindedSignature: blinded values do not match commitment")
        sk = self._signer_key(signer_id)
        if not _mac_ok(sk, bsig["t"], "blind-signature", bsig["c"], bsig["nb"]):
            raise _fail("unblindBlindedSignature: invalid blind signature")
        merged: Dict[int, DataValue] = dict(blinded)
        for idx, (tag, contents) in bsig["nb"]:
            merged[idx] = DVText(contents) if tag == "DVText" else DVInt(contents)
        schema = tuple(ClaimType(c) for c in claim_types)
        if sorted(merged) != list(range(len(schema))):
            raise _fail("unblindBlindedSignature: values do not cover the claim types")
        self._check_value_types(schema, merged)
        return self._signature(signer_id, sk, [merged[i] for i in range(len(schema))])

    # ------------------------------------------------------------------
    # Accumulators
    # ------------------------------------------------------------------

    def _accumulator_key(self, acc_id: str) -> bytes:
        return _mac(self._master, "accumulator-key", acc_id)

    @staticmethod
    def _accumulator_digest(acc_id: str, members: Sequence[bytes], epoch: int) -> bytes:
        return _digest("accumulator", acc_id, sorted(members), epoch)

    def _accumulator(self, acc_id: str, members: Sequence[bytes], epoch: int) -> Accumulator:
        digest = self._accumulator_digest(acc_id, members, epoch)
        return Accumulator(self._encode("accumulator", {"id": acc_id, "d": digest, "e": epoch}))

    def _open_accumulator(
        self, accumulator_data: AccumulatorData, accumulator: Accumulator
    ) -> Tuple[str, List[bytes], int, bytes]:
        secret = self._decode("accumulator-secret", accumulator_data.secret)
        public = self._decode("accumulator-public", accumulator_data.public)
        acc = self._decode("accumulator", accumulator)
        acc_id = public["id"]
        if secret["id"] != acc_id or acc["id"] != acc_id:
            raise _fail("accumulator does not belong to accumulator data")
        members = list(secret["members"])
        if self._accumulator_digest(acc_id, members, secret["e"]) != acc["d"]:
            raise _fail("accumulator value is not current for accumulator data")
        return acc_id, members, secret["e"], acc["d"]

    def _accumulator_data(self, acc_id: str, members: Sequence[bytes], epoch: int) -> AccumulatorData:
        return AccumulatorData(
            AccumulatorPublicData(self._encode("accumulator-public", {"id": acc_id})),
            AccumulatorSecretData(
                self._encode(
                    "accumulator-secret", {"id": acc_id, "members": sorted(members), "e": epoch}
                )
            ),
        )

    def _witness(self, acc_id: str, element: bytes, digest: bytes) -> Witness:
        tag = _mac(self._accumulator_key(acc_id), "witness", element, digest)
        return Witness(self._encode("witness", {"id": acc_id, "e": element, "d": digest, "t": tag}))

    def create_accumulator_data(self) -> Tuple[AccumulatorData, Accumulator]:
        acc_id = self._fresh("accumulator").hex()
        return self._accumulator_data(acc_id, [], 0), self._accumulator(acc_id, [], 0)

    def create_accumulator_element(self, value: str) -> AccumulatorElement:
        return AccumulatorElement(self._encode("element", {"h": _element_hash(value)}))

    def accumulator_add_remove(
        self,
        accumulator_data: AccumulatorData,
        accumulator: Accumulator,
        additions: Mapping[str, AccumulatorElement],
        removals: Sequence[AccumulatorElement],
    ) -> AddRemoveResponse:
        acc_id, members, epoch, old_digest = self._open_accumulator(accumulator_data, accumulator)
        current = set(members)
        added = {label: self._decode("element", elem)["h"] for label, elem in additions.items()}
        removed = [self._decode("element", elem)["h"] for elem in removals]
        for label, h in added.items():
            if h in current:
                raise _fail(f"accumulatorAddRemove: element for {label!r} already a member")
        for h in removed:
            if h not in current:
                raise _fail("accumulatorAddRemove: removed element is not a member")
        current = (current - set(removed)) | set(added.values())
        new_epoch = epoch + 1
        new_digest = self._accumulator_digest(acc_id, list(current), new_epoch)
        update_tag = _mac(self._accumulator_key(acc_id), "update", old_digest, new_digest, sorted(removed))
        update_info = WitnessUpdateInfo(
            self._encode(
                "witness-update",
                {"id": acc_id, "from": old_digest, "to": new_digest, "removed": sorted(removed), "t": update_tag},
            )
        )
        log.debug(f"Accumulator {acc_id[:8]} epoch {epoch} -> {new_epoch}: +{len(added)} -{len(removed)}")
        return AddRemoveResponse(
            witness_update_info=update_info,
            witnesses_for_new={
                label: self._witness(acc_id, h, new_digest) for label, h in added.items()
            },
            accumulator_data=self._accumulator_data(acc_id, list(current), new_epoch),
            accumulator=self._accumulator(acc_id, list(current), new_epoch),
        )

    def get_accumulator_witness(
        self,
        accumulator_data: AccumulatorData,
        accumulator: Accumulator,
        element: AccumulatorElement,
    ) -> Witness:
        acc_id, members, _, digest = self._open_accumulator(accumulator_data, accumulator)
        h = self._decode("element", element)["h"]
        if h not in members:
            raise _fail("getAccumulatorWitness: element is not a member of the accumulator")
        return self._witness(acc_id, h, digest)

    def update_accumulator_witness(
        self,
        witness: Witness,
        element: AccumulatorElement,
        update_info: WitnessUpdateInfo,
    ) -> Witness:
        wit = self._decode("witness", witness)
        upd = self._decode("witness-update", update_info)
        h = self._decode("element", element)["h"]
        acc_id = wit["id"]
        key = self._accumulator_key(acc_id)
        if upd["id"] != acc_id or not _mac_ok(key, upd["t"], "update", upd["from"], upd["to"], upd["removed"]):
            raise _fail("updateAccumulatorWitness: update info is not for this accumulator")
        if wit["e"] != h or not _mac_ok(key, wit["t"], "witness", h, wit["d"]):
            raise _fail("updateAccumulatorWitness: witness does not match element")
        if wit["d"] != upd["from"]:
            raise _fail("updateAccumulatorWitness: witness is not at the update's source state")
        if h in upd["removed"]:
            raise _fail("updateAccumulatorWitness: element was removed from the accumulator")
        return self._witness(acc_id, h, upd["to"])

    def create_membership_proving_key(self) -> MembershipProvingKey:
        return MembershipProvingKey(self._encode("membership-key", {"id": self._fresh("mpk").hex()}))

    # ------------------------------------------------------------------
    # Range proofs and authorities
    # ------------------------------------------------------------------

    def create_range_proof_proving_key(self) -> RangeProofProvingKey:
        return RangeProofProvingKey(self._encode("range-key", {"id": self._fresh("rpk").hex()}))

    def get_range_proof_max_value(self) -> int:
        return self._variant.range_proof_max_value

    def create_authority_data(self) -> AuthorityData:
        private_bytes = self._fresh("authority")
        public_bytes = X25519PrivateKey.from_private_bytes(private_bytes).public_key().public_bytes(
            serialization.Encoding.Raw, serialization.PublicFormat.Raw
        )
        decryption_key = self._fresh("decryption-key")
        return AuthorityData(
            public=AuthorityPublicData(
                self._encode(
                    "authority-public",
                    {"pk": public_bytes, "dkc": hashlib.sha256(decryption_key).digest()},
                )
            ),
            secret=AuthoritySecretData(
                self._encode("authority-secret", {"sk": private_bytes, "pk": public_bytes})
            ),
            decryption_key=AuthorityDecryptionKey(
                self._encode("decryption-key", {"dk": decryption_key, "pk": public_bytes})
            ),
        )

    def _encrypt(self, public_bytes: bytes, plaintext: str, aad: bytes) -> bytes:
        ephemeral = X25519PrivateKey.from_private_bytes(_mac(self._master, "ephemeral", aad))
        shared = ephemeral.exchange(X25519PublicKey.from_public_bytes(public_bytes))
        key = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=_VE_INFO).derive(shared)
        nonce = _mac(self._master, "nonce", aad)[:12]
        eph_public = ephemeral.public_key().public_bytes(
            serialization.Encoding.Raw, serialization.PublicFormat.Raw
        )
        return eph_public + nonce + AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), aad)

    @staticmethod
    def _decrypt(private_bytes: bytes, ciphertext: bytes, aad: bytes) -> str:
        eph_public, nonce, body = ciphertext[:32], ciphertext[32:44], ciphertext[44:]
        shared = X25519PrivateKey.from_private_bytes(private_bytes).exchange(
            X25519PublicKey.from_public_bytes(eph_public)
        )
        key = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=_VE_INFO).derive(shared)
        try:
            return AESGCM(key).decrypt(nonce, body, aad).decode("utf-8")
        except InvalidTag as exc:
            raise _fail("decryption failed: ciphertext does not open under authority key") from exc

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------

    @staticmethod
    def _param(shared_params: SharedParams, label: str, kind: ParamKind) -> Any:
        param: Optional[SharedParam] = shared_params.get(label)
        if param is None or param.kind is not kind:
            raise _fail(f"shared parameter {label!r} missing or not {kind.value}")
        return param.value

    @staticmethod
    def _statement_digest(requirements: RequirementSet, shared_params: SharedParams) -> bytes:
        reqs_blob = []
        labels = set()
        for label in sorted(requirements):
            reqs = requirements[label]
            labels.add(reqs.signer_label)
            labels.update(r.min_label for r in reqs.in_range)
            labels.update(r.max_label for r in reqs.in_range)
            labels.update(r.proving_key_label for r in reqs.in_range)
            for a in reqs.in_accum:
                labels.update(
                    (a.public_data_label, a.membership_key_label, a.accumulator_label, a.seq_num_label)
                )
            labels.update(n.label for n in reqs.not_in_accum)
            labels.update(e.label for e in reqs.encrypted_for)
            reqs_blob.append(
                [
                    label,
                    reqs.signer_label,
                    sorted(reqs.disclosed),
                    sorted([e.from_index, e.to_label, e.to_index] for e in reqs.equal_to),
                    sorted([r.index, r.min_label, r.max_label, r.proving_key_label] for r in reqs.in_range),
                    sorted(
                        [a.index, a.public_data_label, a.membership_key_label, a.accumulator_label, a.seq_num_label]
                        for a in reqs.in_accum
                    ),
                    sorted([n.index, n.label] for n in reqs.not_in_accum),
                    sorted([e.index, e.label] for e in reqs.encrypted_for),
                ]
            )
        params_blob = []
        for label in sorted(labels):
            param = shared_params.get(label)
            if param is None:
                raise _fail(f"shared parameter {label!r} missing")
            value = param.value
            if isinstance(value, SignerPublicData):
                value = [value.setup_data.value, [c.value for c in value.schema], list(value.blinded_indices)]
            elif isinstance(value, Opaque):
                value = value.value
            params_blob.append([label, param.kind.value, value])
        return _digest(reqs_blob, params_blob)

    @staticmethod
    def _revealed_blob(revealed: Mapping[str, Mapping[int, DataValue]]) -> list:
        return [[label, _indexed_blob(revealed[label])] for label in sorted(revealed) if revealed[label]]

    def create_proof(
        self,
        requirements: RequirementSet,
        shared_params: SharedParams,
        sigs_and_related_data: Mapping[str, SignatureAndRelatedData],
        nonce: str,
    ) -> ProofArtifact:
        warnings: List[ProofWarning] = []
        revealed: Dict[str, Dict[int, DataValue]] = {}
        ciphertexts: List[list] = []
        for label in sorted(requirements):
            reqs = requirements[label]
            sard = sigs_and_related_data.get(label)
            if sard is None:
                raise _fail(f"createProof: no signature for credential {label!r}")
            spd: SignerPublicData = self._param(shared_params, reqs.signer_label, ParamKind.SIGNER_PUBLIC_DATA)
            values = sard.values
            self._verify_signature(label, spd, sard)
            warnings.extend(reveal_privacy_warnings(label, reqs, spd.schema))
            for idx in sorted(reqs.referenced_indices()):
                if not 0 <= idx < len(values):
                    raise _fail(f"createProof: {label} index {idx} out of range")
            revealed[label] = {idx: values[idx] for idx in sorted(reqs.disclosed)}
            warnings.extend(self._range_warnings(label, reqs, values, shared_params))
            warnings.extend(self._membership_warnings(label, reqs, sard, shared_params))
            for nacc in reqs.not_in_accum:
                warnings.append(
                    UnsupportedFeature(f"{label}[{nacc.index}]: accumulator non-membership proofs")
                )
            for enc in reqs.encrypted_for:
                value = values[enc.index]
                if spd.schema[enc.index] is not ClaimType.ENCRYPTABLE_TEXT or not isinstance(value, DVText):
                    warnings.append(ConstraintWarning(label, enc.index, "attribute is not encryptable"))
                    continue
                authority = self._decode(
                    "authority-public",
                    self._param(shared_params, enc.label, ParamKind.AUTHORITY_PUBLIC_DATA),
                )
                aad = cbor2.dumps([nonce, label, enc.index, enc.label])
                ciphertexts.append(
                    [label, enc.index, enc.label, self._encrypt(authority["pk"], value.value, aad)]
                )
        warnings.extend(self._equality_warnings(requirements, sigs_and_related_data))

        statement = self._statement_digest(requirements, shared_params)
        revealed_blob = self._revealed_blob(revealed)
        ciphertexts.sort(key=lambda c: (c[0], c[1], c[2]))
        tag = _mac(self._master, "proof", nonce, statement, revealed_blob, ciphertexts)
        proof = Proof(
            self._encode("proof", {"n": nonce, "s": statement, "r": revealed_blob, "ct": ciphertexts, "t": tag})
        )
        log.debug(f"Created proof over {len(requirements)} credential(s) with {len(warnings)} warning(s)")
        return ProofArtifact(tuple(warnings), DataForVerifier(revealed, proof))

    def _verify_signature(self, label: str, spd: SignerPublicData, sard: SignatureAndRelatedData) -> None:
        signer_id = self._signer_id(spd)
        sig = self._decode("signature", sard.signature)
        if len(sard.values) != len(spd.schema):
            raise _fail(f"createProof: {label} has {len(sard.values)} values for {len(spd.schema)} claim types")
        self._check_value_types(spd.schema, dict(enumerate(sard.values)))
        if sig["id"] != signer_id or not _mac_ok(
            self._signer_key(signer_id), sig["t"], "signature", _values_blob(sard.values)
        ):
            raise _fail(f"createProof: signature for {label} does not verify")

    def _range_warnings(
        self, label: str, reqs, values: Sequence[DataValue], shared_params: SharedParams
    ) -> List[ProofWarning]:
        warnings: List[ProofWarning] = []
        for rng in reqs.in_range:
            self._param(shared_params, rng.proving_key_label, ParamKind.RANGE_PROVING_KEY)
            low = self._param(shared_params, rng.min_label, ParamKind.INT)
            high = self._param(shared_params, rng.max_label, ParamKind.INT)
            value = values[rng.index]
            if not isinstance(value, DVInt):
                raise _fail(f"createProof: {label}[{rng.index}] range constraint on non-integer")
            if high > self._variant.range_proof_max_value:
                warnings.append(
                    ConstraintWarning(label, rng.index, f"range maximum {high} exceeds proof system limit")
                )
            elif not low <= value.value <= high:
                warnings.append(ConstraintWarning(label, rng.index, f"value not in [{low}, {high}]"))
        return warnings

    def _membership_warnings(
        self, label: str, reqs, sard: SignatureAndRelatedData, shared_params: SharedParams
    ) -> List[ProofWarning]:
        warnings: List[ProofWarning] = []
        for acc in reqs.in_accum:
            public = self._decode(
                "accumulator-public",
                self._param(shared_params, acc.public_data_label, ParamKind.ACCUMULATOR_PUBLIC_DATA),
            )
            current = self._decode(
                "accumulator", self._param(shared_params, acc.accumulator_label, ParamKind.ACCUMULATOR)
            )
            self._param(shared_params, acc.membership_key_label, ParamKind.MEMBERSHIP_PROVING_KEY)
            self._param(shared_params, acc.seq_num_label, ParamKind.INT)
            value = sard.values[acc.index]
            witness = sard.accumulator_witnesses.get(acc.index)
            if witness is None:
                warnings.append(ConstraintWarning(label, acc.index, "no accumulator witness attached"))
                continue
            if not isinstance(value, DVText):
                raise _fail(f"createProof: {label}[{acc.index}] accumulator member must be text")
            wit = self._decode("witness", witness)
            key = self._accumulator_key(public["id"])
            if wit["id"] != public["id"] or not _mac_ok(key, wit["t"], "witness", wit["e"], wit["d"]):
                warnings.append(ConstraintWarning(label, acc.index, "invalid accumulator witness"))
            elif wit["e"] != _element_hash(value.value):
                warnings.append(ConstraintWarning(label, acc.index, "witness is for a different element"))
            elif wit["d"] != current["d"]:
                warnings.append(ConstraintWarning(label, acc.index, "witness is stale for the accumulator"))
        return warnings

    @staticmethod
    def _equality_warnings(
        requirements: RequirementSet, sigs: Mapping[str, SignatureAndRelatedData]
    ) -> List[ProofWarning]:
        warnings: List[ProofWarning] = []
        for eq_class in equality_classes(requirements):
            for label, idx in eq_class:
                if label not in sigs or not 0 <= idx < len(sigs[label].values):
                    raise _fail(f"createProof: equality references unknown attribute {label}[{idx}]")
            first_label, first_idx = eq_class[0]
            expected = sigs[first_label].values[first_idx]
            for label, idx in eq_class[1:]:
                if sigs[label].values[idx] != expected:
                    warnings.append(
                        ConstraintWarning(label, idx, f"value differs from {first_label}[{first_idx}]")
                    )
        return warnings

    def _open_proof(
        self,
        requirements: RequirementSet,
        shared_params: SharedParams,
        proof: Proof,
        nonce: str,
    ) -> Dict[str, Any]:
        opened = self._decode("proof", proof)
        if not _mac_ok(
            self._master, opened["t"], "proof", opened["n"], opened["s"], opened["r"], opened["ct"]
        ):
            raise _fail("proof verification failed: invalid proof")
        if opened["n"] != nonce:
            raise _fail("proof verification failed: nonce mismatch")
        if opened["s"] != self._statement_digest(requirements, shared_params):
            raise _fail("proof verification failed: requirements or shared parameters differ")
        return opened

    @staticmethod
    def _ciphertext_for(opened: Dict[str, Any], key: DecryptKey) -> bytes:
        for label, idx, auth, ciphertext in opened["ct"]:
            if (label, idx, auth) == tuple(key):
                return ciphertext
        raise _fail(f"no verifiably encrypted value for {key}")

    def _check_decryption_key(self, public: AuthorityPublicData, dk: bytes) -> None:
        authority = self._decode("authority-public", public)
        if hashlib.sha256(dk).digest() != authority["dkc"]:
            raise _fail("authority decryption key does not match authority public data")

    def verify_proof(
        self,
        requirements: RequirementSet,
        shared_params: SharedParams,
        data_for_verifier: DataForVerifier,
        decrypt_requests: Mapping[DecryptKey, DecryptRequest],
        nonce: str,
    ) -> VerificationResult:
        opened = self._open_proof(requirements, shared_params, data_for_verifier.proof, nonce)
        if self._revealed_blob(data_for_verifier.revealed) != opened["r"]:
            raise _fail("proof verification failed: revealed values do not match proof")
        responses: Dict[DecryptKey, DecryptResponse] = {}
        for key in sorted(decrypt_requests):
            request = decrypt_requests[key]
            public = self._param(shared_params, key.authority_label, ParamKind.AUTHORITY_PUBLIC_DATA)
            secret = self._decode("authority-secret", request.authority_secret_data)
            dk = self._decode("decryption-key", request.authority_decryption_key)["dk"]
            self._check_decryption_key(public, dk)
            ciphertext = self._ciphertext_for(opened, key)
            aad = cbor2.dumps([nonce, key.credential_label, key.index, key.authority_label])
            plaintext = self._decrypt(secret["sk"], ciphertext, aad)
            proof_tag = _mac(dk, "decryption", ciphertext, plaintext)
            responses[key] = DecryptResponse(
                plaintext, DecryptionProof(self._encode("decryption-proof", {"t": proof_tag}))
            )
        return VerificationResult((), responses)

    def verify_decryption(
        self,
        requirements: RequirementSet,
        shared_params: SharedParams,
        proof: Proof,
        decryption_keys: Mapping[str, AuthorityDecryptionKey],
        decrypt_responses: Mapping[DecryptKey, DecryptResponse],
        nonce: str,
    ) -> Tuple[ProofWarning, ...]:
        if not self._variant.supports_verify_decryption:
            raise _fail(f'General("{self._variant.unimplemented_marker}")')
        opened = self._open_proof(requirements, shared_params, proof, nonce)
        warnings: List[ProofWarning] = []
        for key in sorted(decrypt_responses):
            response = decrypt_responses[key]
            dk_material = decryption_keys.get(key.authority_label)
            if dk_material is None:
                raise _fail(f"verifyDecryption: no decryption key for {key.authority_label!r}")
            dk = self._decode("decryption-key", dk_material)["dk"]
            public = self._param(shared_params, key.authority_label, ParamKind.AUTHORITY_PUBLIC_DATA)
            self._check_decryption_key(public, dk)
            ciphertext = self._ciphertext_for(opened, key)
            proof_tag = self._decode("decryption-proof", response.decryption_proof)["t"]
            if not _mac_ok(dk, proof_tag, "decryption", ciphertext, response.value):
                warnings.append(
                    ConstraintWarning(key.credential_label, key.index, "decryption proof does not verify")
                )
        return tuple(warnings)
