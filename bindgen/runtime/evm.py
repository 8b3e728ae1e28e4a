"""
EVM client capability surface used by generated contract bindings.

Request/reply records mirror the EVM capability: call_contract,
header_by_number, filter_logs, write_report and log triggers. The module
also holds the base classes generated code builds on (Contract,
ContractError, LogTrigger) and the report encoding of the EVM family.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Callable, List, Optional

from eth_utils import to_checksum_address

from .promise import Promise
from .sdk import Report, ReportEncoding, ReportRequest, Runtime


REPORT_ENCODING = ReportEncoding(encoder='evm', signing_algo='ecdsa', hashing_algo='keccak256')

# Special block numbers understood by header_by_number
LATEST_BLOCK_NUMBER = -2
FINALIZED_BLOCK_NUMBER = -3

SELECTOR_LENGTH = 4


class ConfidenceLevel(Enum):
    SAFE = 'safe'
    LATEST = 'latest'
    FINALIZED = 'finalized'


# =============================================================================
# ERRORS
# =============================================================================

class ContractError(Exception):
    """Base class of generated custom-error types (dataclasses)."""

    def __post_init__(self):
        Exception.__init__(self, *(getattr(self, f.name) for f in fields(self)))

    def __str__(self) -> str:
        values = ', '.join(f'{f.name}={getattr(self, f.name)!r}' for f in fields(self))
        return f'{type(self).__name__}({values})'


class UnknownErrorSelector(ValueError):
    """Revert data whose selector matches none of the contract's errors."""

    def __init__(self, data: bytes):
        self.data = bytes(data)
        selector = self.data[:SELECTOR_LENGTH].hex()
        super().__init__(f'unknown error selector 0x{selector}')


class EventSignatureMismatch(ValueError):
    """A log's topic0 does not match the event being decoded."""


# =============================================================================
# REQUESTS AND REPLIES
# =============================================================================

@dataclass
class CallContractRequest:
    to: str
    data: bytes
    block_number: Optional[int] = None


@dataclass
class CallContractReply:
    data: bytes


@dataclass
class HeaderByNumberRequest:
    block_number: int


@dataclass
class Header:
    number: int
    hash: bytes = b''
    timestamp: int = 0


@dataclass
class HeaderByNumberReply:
    header: Header


@dataclass
class Log:
    address: str
    topics: List[bytes]
    data: bytes
    block_number: Optional[int] = None
    tx_hash: Optional[bytes] = None
    log_index: Optional[int] = None
    removed: bool = False


@dataclass
class FilterQuery:
    addresses: List[str] = field(default_factory=list)
    topics: List[List[bytes]] = field(default_factory=list)
    from_block: Optional[int] = None
    to_block: Optional[int] = None
    block_hash: Optional[bytes] = None


@dataclass
class FilterLogsRequest:
    query: FilterQuery


@dataclass
class FilterLogsReply:
    logs: List[Log] = field(default_factory=list)


@dataclass
class GasConfig:
    gas_limit: int


@dataclass
class ContractOptions:
    """Per-contract defaults applied by generated write paths."""
    gas_config: Optional[GasConfig] = None


@dataclass
class FilterOptions:
    """Block range of a filter_logs_<event> query."""
    from_block: Optional[int] = None
    to_block: Optional[int] = None
    block_hash: Optional[bytes] = None


@dataclass
class WriteReportRequest:
    receiver: str
    report: Report
    gas_config: Optional[GasConfig] = None


@dataclass
class WriteReportReply:
    tx_status: str
    tx_hash: Optional[bytes] = None
    error_message: Optional[str] = None


@dataclass
class FilterLogTriggerRequest:
    addresses: List[str]
    topics: List[List[bytes]]
    confidence: ConfidenceLevel = ConfidenceLevel.FINALIZED


# =============================================================================
# CLIENT AND TRIGGERS
# =============================================================================

class LogTrigger:
    """
    A log trigger registration.

    Generated <Event>Trigger classes override adapt() to decode the raw log.
    """

    def __init__(self, capability_id: str, request: FilterLogTriggerRequest):
        self.capability_id = capability_id
        self.request = request

    def adapt(self, log: Log) -> Any:
        return log


class Client:
    """
    EVM client bound to one chain.

    All calls are routed through the runtime to the capability
    'evm:ChainSelector:<chain_selector>@1.0.0'.
    """

    def __init__(self, chain_selector: int):
        self.chain_selector = chain_selector

    @property
    def capability_id(self) -> str:
        return capability_id_for(self.chain_selector)

    def call_contract(self, runtime: Runtime, request: CallContractRequest) -> Promise[CallContractReply]:
        return runtime.call_capability(self.capability_id, 'CallContract', request)

    def header_by_number(self, runtime: Runtime, request: HeaderByNumberRequest) -> Promise[HeaderByNumberReply]:
        return runtime.call_capability(self.capability_id, 'HeaderByNumber', request)

    def filter_logs(self, runtime: Runtime, request: FilterLogsRequest) -> Promise[FilterLogsReply]:
        return runtime.call_capability(self.capability_id, 'FilterLogs', request)

    def write_report(self, runtime: Runtime, request: WriteReportRequest) -> Promise[WriteReportReply]:
        return runtime.call_capability(self.capability_id, 'WriteReport', request)


def capability_id_for(chain_selector: int) -> str:
    return f'evm:ChainSelector:{chain_selector}@1.0.0'


# =============================================================================
# CONTRACT BASE
# =============================================================================

class Contract:
    """
    Base class of generated contract clients.

    Subclasses set `codec` and add one method per read function, event and
    struct of the contract. Reads default to the latest finalized block.
    """

    codec: Any = None

    def __init__(self, client: Client, address: str, options: Optional[ContractOptions] = None):
        self.client = client
        self.address = to_checksum_address(address)
        self.options = options or ContractOptions()

    def write_report(
        self,
        runtime: Runtime,
        report: Report,
        gas_config: Optional[GasConfig] = None,
    ) -> Promise[WriteReportReply]:
        """Submit a signed report to this contract."""
        if gas_config is None:
            gas_config = self.options.gas_config
        request = WriteReportRequest(receiver=self.address, report=report, gas_config=gas_config)
        return self.client.write_report(runtime, request)

    def unpack_error(self, data: bytes) -> ContractError:
        """Decode revert data into the matching custom error."""
        return self.codec.unpack_error(data)

    def _resolve_block_number(self, runtime: Runtime, block_number: Optional[int]) -> Promise[int]:
        if block_number is not None:
            return Promise.resolved(block_number)
        request = HeaderByNumberRequest(block_number=FINALIZED_BLOCK_NUMBER)
        return self.client.header_by_number(runtime, request).then(lambda reply: reply.header.number)

    def _call_contract(self, runtime: Runtime, data: bytes, block_number: Optional[int]) -> Promise[bytes]:
        def call(number: int) -> Promise[CallContractReply]:
            request = CallContractRequest(to=self.address, data=data, block_number=number)
            return self.client.call_contract(runtime, request)

        return self._resolve_block_number(runtime, block_number).then_promise(call).then(lambda reply: reply.data)

    def _write_encoded(
        self,
        runtime: Runtime,
        encode: Callable[[], bytes],
        gas_config: Optional[GasConfig],
    ) -> Promise[WriteReportReply]:
        # Encoding errors surface through the returned promise
        return (
            Promise.attempt(encode)
            .then_promise(lambda payload: runtime.generate_report(ReportRequest.for_payload(payload, REPORT_ENCODING)))
            .then_promise(lambda report: self.write_report(runtime, report, gas_config))
        )

    def _filter_logs(
        self,
        runtime: Runtime,
        topics: List[List[bytes]],
        options: Optional[FilterOptions],
    ) -> Promise[FilterLogsReply]:
        options = options or FilterOptions()
        query = FilterQuery(
            addresses=[self.address],
            topics=topics,
            from_block=options.from_block,
            to_block=options.to_block,
            block_hash=options.block_hash,
        )
        return self.client.filter_logs(runtime, FilterLogsRequest(query=query))
