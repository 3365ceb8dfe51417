"""
Verifier-authored proof requirements per credential label.

A requirement set maps each credential label to a ``CredentialRequirements``
describing what must be disclosed, which attributes must be equal across
credentials, which integers must lie in a range, which attributes must be
accumulator members and which must be verifiably encrypted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Set, Tuple

from .exceptions import ConfigurationError
from .types import ClaimType, DecryptKey, RevealPrivacyWarning


@dataclass(frozen=True)
class EqInfo:
    from_index: int
    to_label: str
    to_index: int


@dataclass(frozen=True)
class InRangeInfo:
    index: int
    min_label: str
    max_label: str
    proving_key_label: str


@dataclass(frozen=True)
class InAccumInfo:
    index: int
    public_data_label: str
    membership_key_label: str
    accumulator_label: str
    seq_num_label: str


@dataclass(frozen=True)
class IndexAndLabel:
    index: int
    label: str


def _is_index(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


_CONSTRAINT_FIELDS = (
    "disclosed",
    "equal_to",
    "in_range",
    "in_accum",
    "not_in_accum",
    "encrypted_for",
)


@dataclass(frozen=True)
class CredentialRequirements:
    signer_label: str
    disclosed: Tuple[int, ...] = ()
    equal_to: Tuple[EqInfo, ...] = ()
    in_range: Tuple[InRangeInfo, ...] = ()
    in_accum: Tuple[InAccumInfo, ...] = ()
    not_in_accum: Tuple[IndexAndLabel, ...] = ()
    encrypted_for: Tuple[IndexAndLabel, ...] = ()

    def __post_init__(self) -> None:
        if not self.signer_label:
            raise ConfigurationError("signer_label must be non-empty")
        for name in _CONSTRAINT_FIELDS:
            object.__setattr__(self, name, tuple(getattr(self, name)))
        for idx in self._index_fields():
            if not _is_index(idx):
                raise ConfigurationError(f"attribute index must be an int, got {idx!r}")
        if len(set(self.disclosed)) != len(self.disclosed):
            raise ConfigurationError(f"duplicate disclosed index in {self.disclosed}")
        in_accum_idxs = [c.index for c in self.in_accum]
        if len(set(in_accum_idxs)) != len(in_accum_idxs):
            raise ConfigurationError("at most one accumulator constraint per index")

    def _index_fields(self) -> List[int]:
        idxs = list(self.disclosed)
        for eq in self.equal_to:
            idxs.extend((eq.from_index, eq.to_index))
        idxs.extend(r.index for r in self.in_range)
        idxs.extend(a.index for a in self.in_accum)
        idxs.extend(n.index for n in self.not_in_accum)
        idxs.extend(e.index for e in self.encrypted_for)
        return idxs

    def referenced_indices(self) -> Set[int]:
        """Every attribute index any constraint of this credential touches."""
        idxs: Set[int] = set(self.disclosed)
        idxs.update(e.from_index for e in self.equal_to)
        idxs.update(r.index for r in self.in_range)
        idxs.update(a.index for a in self.in_accum)
        idxs.update(n.index for n in self.not_in_accum)
        idxs.update(e.index for e in self.encrypted_for)
        return idxs

    def accumulator_indices(self) -> Tuple[int, ...]:
        return tuple(sorted(a.index for a in self.in_accum))


RequirementSet = Mapping[str, CredentialRequirements]


def check_indices(label: str, reqs: CredentialRequirements, num_values: int) -> None:
    """
    Raises:
        ConfigurationError: If any referenced index is outside the credential.
    """
    for idx in sorted(reqs.referenced_indices()):
        if not _is_index(idx) or not 0 <= idx < num_values:
            raise ConfigurationError(
                f"{label}: index {idx} out of range for {num_values} attributes"
            )


def check_equality_targets(requirements: RequirementSet, sizes: Mapping[str, int]) -> None:
    for label, reqs in requirements.items():
        for eq in reqs.equal_to:
            if eq.to_label not in requirements:
                raise ConfigurationError(
                    f"{label}: equality target {eq.to_label!r} is not a credential label"
                )
            if not 0 <= eq.to_index < sizes[eq.to_label]:
                raise ConfigurationError(
                    f"{label}: equality target {eq.to_label}[{eq.to_index}] out of range"
                )


def equality_classes(requirements: RequirementSet) -> List[List[Tuple[str, int]]]:
    """
    Merge equality edges into disjoint, sorted equivalence classes.

    Edges declared in both directions collapse into the same class. The
    result is sorted so identical requirement sets always compose to the same
    request.
    """
    classes: List[Set[Tuple[str, int]]] = []
    for label in sorted(requirements):
        for eq in requirements[label].equal_to:
            pair = {(label, eq.from_index), (eq.to_label, eq.to_index)}
            touching = [c for c in classes if c & pair]
            merged = set(pair)
            for c in touching:
                merged |= c
                classes.remove(c)
            classes.append(merged)
    return sorted(sorted(c) for c in classes)


def expected_decrypt_keys(requirements: RequirementSet) -> Set[DecryptKey]:
    return {
        DecryptKey(label, enc.index, enc.label)
        for label, reqs in requirements.items()
        for enc in reqs.encrypted_for
    }


def disclosed_union(requirements: RequirementSet) -> Dict[str, Tuple[int, ...]]:
    """Disclosed indices per label, omitting labels that disclose nothing."""
    return {
        label: tuple(sorted(reqs.disclosed))
        for label, reqs in requirements.items()
        if reqs.disclosed
    }


def reveal_privacy_warnings(
    label: str, reqs: CredentialRequirements, schema: Iterable[ClaimType]
) -> List[RevealPrivacyWarning]:
    """Warn for disclosed attributes whose claim type should stay hidden."""
    schema = tuple(schema)
    warnings = []
    for idx in sorted(reqs.disclosed):
        if idx >= len(schema):
            continue
        concern = schema[idx].reveal_concern
        if concern is not None:
            warnings.append(RevealPrivacyWarning(label, idx, concern))
    return warnings
