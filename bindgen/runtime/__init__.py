"""
Runtime support imported by generated bindings.

Module Structure:
- promise.py: lazily evaluated Promise
- sdk.py: Runtime, capability routing, report requests
- evm.py: EVM client, Contract base class, request/reply records, ContractError, LogTrigger
- topics.py: indexed event topic encoding/decoding
- solana.py: Solana client, Program base class, Borsh helpers, ForwarderReport, sub-key filters
- testing.py: in-memory capability mocks
"""

from .promise import Promise
from .sdk import (
    CONSENSUS_CAPABILITY_ID,
    Capability,
    CapabilityError,
    Report,
    ReportEncoding,
    ReportRequest,
    Runtime,
)

__all__ = [
    'Promise',
    'CONSENSUS_CAPABILITY_ID',
    'Capability',
    'CapabilityError',
    'Report',
    'ReportEncoding',
    'ReportRequest',
    'Runtime',
]
