"""
Concurrent preparation of independent credentials and accumulators.

Issuance for one credential and accumulator setup for one accumulator share
no data, so each runs as its own job. Engine calls block, so every job runs
in a worker thread under a trio nursery; the nursery returns only once all
jobs finished. The first orchestrator error cancels the nursery and is
re-raised as is once the running threads return. No timeout is applied.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import trio

from .accumulators import AccumulatorWitnessManager
from .exceptions import OrchestratorError
from .interfaces import ProofEngine
from .signer import SignerWorkflow
from .types import (
    AccumulatorElement,
    AccumulatorState,
    ClaimType,
    IssuanceResult,
    MembershipProvingKey,
    Witness,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuanceJob:
    label: str
    values: Tuple
    claim_types: Tuple[ClaimType, ...]
    blinded_indices: Tuple[int, ...] = ()


@dataclass(frozen=True)
class AccumulatorJob:
    """Create an accumulator and add ``members`` (holder label -> value) in one batch."""

    label: str
    members: Mapping[str, str]


@dataclass(frozen=True)
class AccumulatorSetup:
    state: AccumulatorState
    membership_key: MembershipProvingKey
    elements: Mapping[str, AccumulatorElement]
    witnesses: Mapping[str, Witness]


@dataclass
class PreparedCredentials:
    issued: Dict[str, IssuanceResult] = field(default_factory=dict)
    accumulators: Dict[str, AccumulatorSetup] = field(default_factory=dict)


def _issue(engine: ProofEngine, job: IssuanceJob) -> IssuanceResult:
    return SignerWorkflow(engine).issue(job.values, job.claim_types, job.blinded_indices)


def _setup_accumulator(engine: ProofEngine, job: AccumulatorJob) -> AccumulatorSetup:
    manager = AccumulatorWitnessManager(engine)
    state = manager.create_accumulator()
    elements = {holder: manager.create_element(value) for holder, value in job.members.items()}
    if elements:
        state, witnesses = manager.add_elements(state, elements)
    else:
        witnesses = {}
    return AccumulatorSetup(
        state=state,
        membership_key=manager.create_membership_proving_key(),
        elements=elements,
        witnesses=witnesses,
    )


async def prepare_concurrently(
    engine: ProofEngine,
    issuance_jobs: Sequence[IssuanceJob] = (),
    accumulator_jobs: Sequence[AccumulatorJob] = (),
) -> PreparedCredentials:
    """Run all jobs concurrently and wait for every one of them."""
    labels = [job.label for job in issuance_jobs]
    if len(set(labels)) != len(labels):
        raise ValueError(f"duplicate issuance labels in {labels}")
    acc_labels = [job.label for job in accumulator_jobs]
    if len(set(acc_labels)) != len(acc_labels):
        raise ValueError(f"duplicate accumulator labels in {acc_labels}")

    prepared = PreparedCredentials()
    failures: List[OrchestratorError] = []

    async with trio.open_nursery() as nursery:

        async def guarded(kind: str, label: str, fn, job) -> Any:
            try:
                return await trio.to_thread.run_sync(fn, engine, job)
            except OrchestratorError as e:
                log.warning(f"{kind} job {label!r} failed: {e}")
                failures.append(e)
                nursery.cancel_scope.cancel()
                return None

        async def run_issuance(job: IssuanceJob) -> None:
            result = await guarded("issuance", job.label, _issue, job)
            if result is not None:
                prepared.issued[job.label] = result

        async def run_accumulator(job: AccumulatorJob) -> None:
            result = await guarded("accumulator", job.label, _setup_accumulator, job)
            if result is not None:
                prepared.accumulators[job.label] = result

        for job in issuance_jobs:
            nursery.start_soon(run_issuance, job)
        for job in accumulator_jobs:
            nursery.start_soon(run_accumulator, job)

    if failures:
        raise failures[0]

    log.info(
        f"Prepared {len(prepared.issued)} credential(s) and "
        f"{len(prepared.accumulators)} accumulator(s)"
    )
    return prepared


def prepare(
    engine: ProofEngine,
    issuance_jobs: Sequence[IssuanceJob] = (),
    accumulator_jobs: Sequence[AccumulatorJob] = (),
) -> PreparedCredentials:
    """Blocking wrapper around ``prepare_concurrently``."""
    return trio.run(
        functools.partial(prepare_concurrently, engine, issuance_jobs, accumulator_jobs)
    )
