"""
Accumulator and membership witness lifecycle.

Batch policy:
- every add/remove batch advances the sequence number by exactly one;
- a batch must change something, may not add an element twice, and may not
  both add and remove the same element;
- witnesses of removed elements are dropped from the manager's cache and
  are never handed out again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .exceptions import BackendError, ConfigurationError
from .interfaces import ProofEngine
from .types import (
    AccumulatorElement,
    AccumulatorState,
    MembershipProvingKey,
    SignatureAndRelatedData,
    Witness,
    WitnessUpdateInfo,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one add/remove batch."""

    state: AccumulatorState
    witnesses: Mapping[str, Witness]
    update_info: WitnessUpdateInfo
    removed: Tuple[AccumulatorElement, ...] = field(default=())


class AccumulatorWitnessManager:
    """Creates accumulators and issues membership witnesses."""

    def __init__(self, engine: ProofEngine) -> None:
        self._engine = engine
        self._elements: Dict[str, AccumulatorElement] = {}

    def create_accumulator(self) -> AccumulatorState:
        data, accumulator = self._engine.create_accumulator_data()
        log.info("Created accumulator at sequence number 0")
        return AccumulatorState(data=data, accumulator=accumulator, seq_num=0)

    def create_element(self, value: str) -> AccumulatorElement:
        return self._engine.create_accumulator_element(value)

    def create_membership_proving_key(self) -> MembershipProvingKey:
        return self._engine.create_membership_proving_key()

    def element_for(self, holder_label: str) -> Optional[AccumulatorElement]:
        return self._elements.get(holder_label)

    def apply_batch(
        self,
        state: AccumulatorState,
        additions: Mapping[str, AccumulatorElement],
        removals: Sequence[AccumulatorElement] = (),
    ) -> BatchResult:
        """
        Add and remove elements in one batch.

        Raises:
            ConfigurationError: If the batch is empty, adds an element twice,
                or adds and removes the same element.
            BackendError: If the engine rejects the batch.
        """
        removals = tuple(removals)
        if not additions and not removals:
            raise ConfigurationError("accumulator batch must add or remove at least one element")
        added = list(additions.values())
        if len(set(added)) != len(added):
            raise ConfigurationError("accumulator batch adds the same element twice")
        if len(set(removals)) != len(removals):
            raise ConfigurationError("accumulator batch removes the same element twice")
        if set(added) & set(removals):
            raise ConfigurationError("accumulator batch both adds and removes an element")

        response = self._engine.accumulator_add_remove(
            state.data, state.accumulator, dict(additions), list(removals)
        )
        missing = set(additions) - set(response.witnesses_for_new)
        extra = set(response.witnesses_for_new) - set(additions)
        if missing or extra:
            raise BackendError(
                0,
                f"accumulatorAddRemove returned witnesses for {sorted(response.witnesses_for_new)}, "
                f"expected {sorted(additions)}",
            )

        removed = set(removals)
        for label in [lbl for lbl, elem in self._elements.items() if elem in removed]:
            del self._elements[label]
        self._elements.update(additions)

        new_state = AccumulatorState(
            data=response.accumulator_data,
            accumulator=response.accumulator,
            seq_num=state.seq_num + 1,
        )
        log.info(
            f"Accumulator batch applied: +{len(additions)} -{len(removals)}, "
            f"sequence number {state.seq_num} -> {new_state.seq_num}"
        )
        return BatchResult(
            state=new_state,
            witnesses=dict(response.witnesses_for_new),
            update_info=response.witness_update_info,
            removed=removals,
        )

    def add_elements(
        self, state: AccumulatorState, labeled_elements: Mapping[str, AccumulatorElement]
    ) -> Tuple[AccumulatorState, Dict[str, Witness]]:
        """Add one batch of elements; returns the new state and witnesses by holder label."""
        result = self.apply_batch(state, labeled_elements)
        return result.state, dict(result.witnesses)

    def remove_elements(
        self, state: AccumulatorState, elements: Sequence[AccumulatorElement]
    ) -> BatchResult:
        return self.apply_batch(state, {}, elements)

    def get_witness(self, state: AccumulatorState, element: AccumulatorElement) -> Witness:
        return self._engine.get_accumulator_witness(state.data, state.accumulator, element)

    def check_witness(
        self, state: AccumulatorState, element: AccumulatorElement, witness: Witness
    ) -> Witness:
        """
        Recompute the witness for ``element`` and require it equals ``witness``.

        Raises:
            BackendError: If the recomputed witness differs.
        """
        recomputed = self.get_witness(state, element)
        if recomputed != witness:
            raise BackendError(
                0,
                f"witness mismatch at sequence number {state.seq_num}: "
                "recomputed witness differs from the one issued",
            )
        return recomputed

    def update_witness(
        self,
        witness: Witness,
        element: AccumulatorElement,
        update_info: WitnessUpdateInfo,
    ) -> Witness:
        return self._engine.update_accumulator_witness(witness, element, update_info)

    @staticmethod
    def attach_witness(
        credential: SignatureAndRelatedData, index: int, witness: Witness
    ) -> SignatureAndRelatedData:
        return credential.attach_witness(index, witness)
