"""
Exemption Service

Host-level opt-out from enforcement, resolved via group membership.
"""

from .oracle import (
    ExemptionOracle,
    StaticExemptionOracle,
    DirectoryExemptionOracle,
    ChainedExemptionOracle,
    create_oracle,
    host_identity,
)

__all__ = [
    "ExemptionOracle",
    "StaticExemptionOracle",
    "DirectoryExemptionOracle",
    "ChainedExemptionOracle",
    "create_oracle",
    "host_identity",
]
