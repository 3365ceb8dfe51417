"""
Catalogue of proof-system variants understood by the proof server.

Each entry records the facts the orchestrator needs to branch on; adding a
variant is a data change here, not a code change elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Final, Optional, Tuple

from .exceptions import ConfigurationError

RANGE_PROOF_MAX_VALUE: Final[int] = 2**63 - 1


@dataclass(frozen=True)
class ProofSystemVariant:
    """
    Description of one proof system.

    Attributes:
        name: Catalogue key.
        zkp_lib: Value of the server's ``zkpLib`` query parameter.
        description: Short human readable summary.
        supports_verify_decryption: Whether authority-side decryption
            verification is implemented.
        unimplemented_code: Error code reported for the unimplemented check.
        unimplemented_marker: Message substring identifying that failure.
        range_proof_max_value: Largest value a range proof can bound.
    """

    name: str
    zkp_lib: str
    description: str
    supports_verify_decryption: bool = True
    unimplemented_code: int = 400
    unimplemented_marker: Optional[str] = None
    range_proof_max_value: int = RANGE_PROOF_MAX_VALUE

    def is_known_limitation(self, code: int, message: str) -> bool:
        """Return True if (code, message) is this variant's catalogued gap."""
        if self.supports_verify_decryption or self.unimplemented_marker is None:
            return False
        return code == self.unimplemented_code and self.unimplemented_marker in message


_AC2C_MARKER = "specific_verify_decryption_ac2c : UNIMPLEMENTED"

VARIANTS: Final[Dict[str, ProofSystemVariant]] = {
    "AC2C_BBS": ProofSystemVariant(
        name="AC2C_BBS",
        zkp_lib="AC2C_BBS",
        description="BBS+ signatures with AC2C accumulators",
        supports_verify_decryption=False,
        unimplemented_marker=_AC2C_MARKER,
    ),
    "AC2C_PS": ProofSystemVariant(
        name="AC2C_PS",
        zkp_lib="AC2C_PS",
        description="PS signatures with AC2C accumulators",
        supports_verify_decryption=False,
        unimplemented_marker=_AC2C_MARKER,
    ),
    "DNC": ProofSystemVariant(
        name="DNC",
        zkp_lib="DNC",
        description="Docknetwork crypto (BBS+, VB accumulators, SAVER)",
    ),
}


def variant_names() -> Tuple[str, ...]:
    return tuple(sorted(VARIANTS))


def get_variant(name: str) -> ProofSystemVariant:
    """
    Look up a variant by name.

    Raises:
        ConfigurationError: If the name is not catalogued.
    """
    try:
        return VARIANTS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown proof system: {name!r}. Valid options: {', '.join(variant_names())}"
        ) from None
