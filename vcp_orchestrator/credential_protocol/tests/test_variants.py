"""
Unit tests for the proof system catalogue.
"""

import pytest

from vcp_orchestrator.credential_protocol.exceptions import ConfigurationError
from vcp_orchestrator.credential_protocol.variants import (
    RANGE_PROOF_MAX_VALUE,
    VARIANTS,
    get_variant,
    variant_names,
)

MARKER = 'General("specific_verify_decryption_ac2c : UNIMPLEMENTED")'


def test_catalogue() -> None:
    assert variant_names() == ("AC2C_BBS", "AC2C_PS", "DNC")
    for name, variant in VARIANTS.items():
        assert variant.name == name
        assert variant.zkp_lib == name


def test_range_proof_max_value() -> None:
    assert RANGE_PROOF_MAX_VALUE == 2**63 - 1
    assert all(v.range_proof_max_value == 2**63 - 1 for v in VARIANTS.values())


@pytest.mark.parametrize("name", ["AC2C_BBS", "AC2C_PS"])
def test_ac2c_decryption_check_is_a_known_limitation(name: str) -> None:
    variant = get_variant(name)
    assert not variant.supports_verify_decryption
    assert variant.is_known_limitation(400, f"verifyDecryption: {MARKER}")
    assert not variant.is_known_limitation(500, MARKER)
    assert not variant.is_known_limitation(400, "verifyDecryption: bad proof")


def test_dnc_has_no_known_limitation() -> None:
    variant = get_variant("DNC")
    assert variant.supports_verify_decryption
    assert not variant.is_known_limitation(400, MARKER)


def test_unknown_variant() -> None:
    with pytest.raises(ConfigurationError, match="Unknown proof system: 'GROTH'"):
        get_variant("GROTH")
