"""Client-side orchestration for selective-disclosure credential proofs."""

__version__ = "0.1.0"
