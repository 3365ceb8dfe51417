"""Wire constants for the proof server's JSON API."""

from ...credential_protocol.config import API_PREFIX

# Operations that take an ``rngSeed`` query parameter.
RANDOMIZED_OPS = frozenset(
    {
        "createSignerData",
        "sign",
        "createBlindSigningInfo",
        "signWithBlindedAttributes",
        "createAccumulatorData",
        "createMembershipProvingKey",
        "createRangeProofProvingKey",
        "createAuthorityData",
    }
)

GET_OPS = frozenset({"getRangeProofMaxValue"})

ZKP_LIB_PARAM = "zkpLib"
RNG_SEED_PARAM = "rngSeed"

ERROR_REASON_FIELD = "reason"
ERROR_LOCATION_FIELD = "location"


def op_path(operation: str) -> str:
    return f"{API_PREFIX}/{operation}"
