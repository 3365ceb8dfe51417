"""
Label-keyed table of public parameters referenced by proof requirements.

The registry is append-only for one proof session. Writing a label twice is
allowed only with an identical value, so concurrent preparation jobs that
publish the same parameter agree instead of racing.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Sequence, Tuple

from .exceptions import ConfigurationError
from .requirements import RequirementSet
from .types import (
    Accumulator,
    AccumulatorPublicData,
    AccumulatorState,
    AuthorityPublicData,
    MembershipProvingKey,
    RangeProofProvingKey,
    SignerPublicData,
)

log = logging.getLogger(__name__)


class ParamKind(Enum):
    SIGNER_PUBLIC_DATA = "signer_public_data"
    ACCUMULATOR_PUBLIC_DATA = "accumulator_public_data"
    ACCUMULATOR = "accumulator"
    MEMBERSHIP_PROVING_KEY = "membership_proving_key"
    RANGE_PROVING_KEY = "range_proving_key"
    AUTHORITY_PUBLIC_DATA = "authority_public_data"
    INT = "int"


_EXPECTED_TYPES: Dict[ParamKind, type] = {
    ParamKind.SIGNER_PUBLIC_DATA: SignerPublicData,
    ParamKind.ACCUMULATOR_PUBLIC_DATA: AccumulatorPublicData,
    ParamKind.ACCUMULATOR: Accumulator,
    ParamKind.MEMBERSHIP_PROVING_KEY: MembershipProvingKey,
    ParamKind.RANGE_PROVING_KEY: RangeProofProvingKey,
    ParamKind.AUTHORITY_PUBLIC_DATA: AuthorityPublicData,
    ParamKind.INT: int,
}


@dataclass(frozen=True)
class SharedParam:
    kind: ParamKind
    value: Any


def _checked_param(label: str, kind: ParamKind, value: Any) -> SharedParam:
    if not isinstance(label, str) or not label:
        raise ConfigurationError("shared parameter label must be a non-empty str")
    expected = _EXPECTED_TYPES[kind]
    if not isinstance(value, expected) or (kind is ParamKind.INT and isinstance(value, bool)):
        raise ConfigurationError(
            f"{label}: {kind.value} requires {expected.__name__}, got {type(value).__name__}"
        )
    return SharedParam(kind, value)


class SharedParameterRegistry:
    """
    Thread-safe, write-once label -> parameter table.

    Example:
        >>> registry = SharedParameterRegistry()
        >>> registry.put_int("dlMinBDdays", 37696)
        >>> registry.resolve("dlMinBDdays", ParamKind.INT)
        37696
    """

    def __init__(self) -> None:
        self._entries: Dict[str, SharedParam] = {}
        self._lock = threading.Lock()

    def __contains__(self, label: object) -> bool:
        return label in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.labels())

    def labels(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._entries))

    def entries(self) -> Dict[str, SharedParam]:
        """Snapshot of the table, safe to hand to an engine call."""
        with self._lock:
            return dict(self._entries)

    def put(self, label: str, kind: ParamKind, value: Any) -> None:
        """
        Publish a parameter under ``label``.

        Raises:
            ConfigurationError: If the value has the wrong type for ``kind`` or
                the label is already bound to a different parameter.
        """
        self._put_many([(label, kind, value)])

    def _put_many(self, items: Sequence[Tuple[str, ParamKind, Any]]) -> None:
        """Publish all of ``items`` or, on any conflict, none of them."""
        pending: Dict[str, SharedParam] = {}
        for label, kind, value in items:
            param = _checked_param(label, kind, value)
            if pending.get(label, param) != param:
                raise ConfigurationError(
                    f"shared parameter {label!r} already bound to a different value"
                )
            pending[label] = param
        with self._lock:
            for label, param in pending.items():
                existing = self._entries.get(label)
                if existing is not None and existing != param:
                    raise ConfigurationError(
                        f"shared parameter {label!r} already bound to a different value"
                    )
            added = [label for label in pending if label not in self._entries]
            for label in added:
                self._entries[label] = pending[label]
        for label in added:
            log.debug(f"Registered shared parameter {label} ({pending[label].kind.value})")

    def put_signer_public_data(self, label: str, value: SignerPublicData) -> None:
        self.put(label, ParamKind.SIGNER_PUBLIC_DATA, value)

    def put_membership_proving_key(self, label: str, value: MembershipProvingKey) -> None:
        self.put(label, ParamKind.MEMBERSHIP_PROVING_KEY, value)

    def put_range_proving_key(self, label: str, value: RangeProofProvingKey) -> None:
        self.put(label, ParamKind.RANGE_PROVING_KEY, value)

    def put_authority_public_data(self, label: str, value: AuthorityPublicData) -> None:
        self.put(label, ParamKind.AUTHORITY_PUBLIC_DATA, value)

    def put_int(self, label: str, value: int) -> None:
        self.put(label, ParamKind.INT, value)

    def put_range(self, min_label: str, min_value: int, max_label: str, max_value: int) -> None:
        if min_value > max_value:
            raise ConfigurationError(f"empty range [{min_value}, {max_value}]")
        self._put_many([(min_label, ParamKind.INT, min_value), (max_label, ParamKind.INT, max_value)])

    def put_accumulator_state(
        self,
        state: AccumulatorState,
        *,
        public_data_label: str,
        accumulator_label: str,
        seq_num_label: str,
    ) -> None:
        """Publish the public view of an accumulator at its current sequence number."""
        self._put_many([
            (public_data_label, ParamKind.ACCUMULATOR_PUBLIC_DATA, state.data.public),
            (accumulator_label, ParamKind.ACCUMULATOR, state.accumulator),
            (seq_num_label, ParamKind.INT, state.seq_num),
        ])

    def resolve(self, label: str, kind: ParamKind) -> Any:
        """
        Raises:
            ConfigurationError: If the label is unknown or holds another kind.
        """
        with self._lock:
            param = self._entries.get(label)
        if param is None:
            raise ConfigurationError(f"unresolved shared parameter label {label!r}")
        if param.kind is not kind:
            raise ConfigurationError(
                f"shared parameter {label!r} is {param.kind.value}, expected {kind.value}"
            )
        return param.value

    def validate_labels(self, requirements: RequirementSet) -> None:
        """
        Check every label referenced by ``requirements`` resolves with the
        expected kind.

        Raises:
            ConfigurationError: On the first unresolved or mistyped label.
        """
        for cred_label in sorted(requirements):
            reqs = requirements[cred_label]
            self.resolve(reqs.signer_label, ParamKind.SIGNER_PUBLIC_DATA)
            for rng in reqs.in_range:
                self.resolve(rng.min_label, ParamKind.INT)
                self.resolve(rng.max_label, ParamKind.INT)
                self.resolve(rng.proving_key_label, ParamKind.RANGE_PROVING_KEY)
            for acc in reqs.in_accum:
                self.resolve(acc.public_data_label, ParamKind.ACCUMULATOR_PUBLIC_DATA)
                self.resolve(acc.membership_key_label, ParamKind.MEMBERSHIP_PROVING_KEY)
                self.resolve(acc.accumulator_label, ParamKind.ACCUMULATOR)
                self.resolve(acc.seq_num_label, ParamKind.INT)
            for nacc in reqs.not_in_accum:
                self.resolve(nacc.label, ParamKind.ACCUMULATOR)
            for enc in reqs.encrypted_for:
                self.resolve(enc.label, ParamKind.AUTHORITY_PUBLIC_DATA)
