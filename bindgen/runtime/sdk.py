"""
Minimal workflow runtime used by generated bindings.

Generated clients never talk to a chain directly. They hand requests to a
Runtime, which routes them to the capability registered under the
client's capability id (evm:ChainSelector:<n>@1.0.0, ...). Signed reports
come from the consensus capability.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .promise import Promise


CONSENSUS_CAPABILITY_ID = 'consensus@1.0.0-alpha'


class CapabilityError(Exception):
    """A capability is missing or rejected a request."""


@dataclass(frozen=True)
class ReportEncoding:
    """How the consensus layer encodes, signs and hashes a report payload."""
    encoder: str
    signing_algo: str
    hashing_algo: str


@dataclass
class ReportRequest:
    encoded_payload: bytes
    encoder_name: str
    signing_algo: str
    hashing_algo: str

    @classmethod
    def for_payload(cls, payload: bytes, encoding: ReportEncoding) -> 'ReportRequest':
        return cls(
            encoded_payload=payload,
            encoder_name=encoding.encoder,
            signing_algo=encoding.signing_algo,
            hashing_algo=encoding.hashing_algo,
        )


@dataclass
class Report:
    """A consensus-attested report ready to be written on chain."""
    raw_report: bytes
    encoder_name: str = ''
    signing_algo: str = ''
    hashing_algo: str = ''
    signatures: List[bytes] = field(default_factory=list)


class Capability:
    """Base class for capabilities a Runtime can route requests to."""

    capability_id: str = ''

    def invoke(self, method: str, request: Any) -> Any:
        handler = getattr(self, _handler_name(method), None)
        if handler is None:
            raise CapabilityError(f'{self.capability_id}: unsupported method {method}')
        return handler(request)


def _handler_name(method: str) -> str:
    # CallContract -> call_contract
    out = []
    for i, ch in enumerate(method):
        if ch.isupper() and i > 0:
            out.append('_')
        out.append(ch.lower())
    return ''.join(out)


class Runtime:
    """
    Routes capability calls made by generated bindings.

    Usage:
        runtime = Runtime()
        runtime.register_capability(my_evm_capability)
        contract.get_value(runtime).result()
    """

    def __init__(self):
        self._capabilities: Dict[str, Capability] = {}

    def register_capability(self, capability: Capability) -> None:
        self._capabilities[capability.capability_id] = capability

    def call_capability(self, capability_id: str, method: str, request: Any) -> Promise[Any]:
        """Lazily invoke method on the capability registered under capability_id."""
        def call():
            capability = self._capabilities.get(capability_id)
            if capability is None:
                raise CapabilityError(f'capability not registered: {capability_id}')
            return capability.invoke(method, request)
        return Promise(call)

    def generate_report(self, request: ReportRequest) -> Promise[Report]:
        """Ask the consensus capability to sign request.encoded_payload."""
        return self.call_capability(CONSENSUS_CAPABILITY_ID, 'Report', request)
