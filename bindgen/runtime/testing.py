"""
In-memory capability mocks for exercising generated bindings in tests.

Usage:
    evm_mock = EvmClientCapabilityMock(chain_selector=1)
    consensus = ConsensusCapabilityMock()
    runtime = new_runtime(evm_mock, consensus)
    DataStorageMock(address, evm_mock).get_value = lambda: 42
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

from eth_utils import keccak, to_checksum_address
from solders.pubkey import Pubkey

from . import evm, solana
from .sdk import CONSENSUS_CAPABILITY_ID, Capability, CapabilityError, Report, ReportRequest, Runtime


def new_runtime(*capabilities: Capability) -> Runtime:
    """Create a Runtime with the given capabilities registered."""
    runtime = Runtime()
    for capability in capabilities:
        runtime.register_capability(capability)
    return runtime


class _RecordingCapability(Capability):
    def __init__(self):
        self.requests: List[Tuple[str, Any]] = []

    def invoke(self, method: str, request: Any) -> Any:
        self.requests.append((method, request))
        return super().invoke(method, request)


class ConsensusCapabilityMock(_RecordingCapability):
    """Signs nothing: the report carries the encoded payload verbatim."""

    capability_id = CONSENSUS_CAPABILITY_ID

    def __init__(self, signatures: Optional[List[bytes]] = None):
        super().__init__()
        self.signatures = list(signatures or [])

    def report(self, request: ReportRequest) -> Report:
        return Report(
            raw_report=request.encoded_payload,
            encoder_name=request.encoder_name,
            signing_algo=request.signing_algo,
            hashing_algo=request.hashing_algo,
            signatures=list(self.signatures),
        )


# =============================================================================
# EVM
# =============================================================================

def _topics_match(topics: List[bytes], filter_topics: List[List[bytes]]) -> bool:
    for index, accepted in enumerate(filter_topics):
        if not accepted:
            continue
        if index >= len(topics) or topics[index] not in accepted:
            return False
    return True


class EvmClientCapabilityMock(_RecordingCapability):
    """
    Mock of the EVM client capability.

    Contract calls are dispatched to handlers registered per address with
    add_contract_mock(); generated <Contract>Mock classes do that for you.
    """

    def __init__(self, chain_selector: int, block_number: int = 1):
        super().__init__()
        self.chain_selector = chain_selector
        self.capability_id = evm.capability_id_for(chain_selector)
        self.block_number = block_number
        self.logs: List[evm.Log] = []
        self.written_reports: List[evm.WriteReportRequest] = []
        self._contracts: Dict[str, Callable[[bytes], bytes]] = {}

    def add_contract_mock(self, address: str, handler: Callable[[bytes], bytes]) -> None:
        self._contracts[to_checksum_address(address)] = handler

    def call_contract(self, request: evm.CallContractRequest) -> evm.CallContractReply:
        handler = self._contracts.get(to_checksum_address(request.to))
        if handler is None:
            raise CapabilityError(f'no contract mock registered for {request.to}')
        return evm.CallContractReply(data=handler(bytes(request.data)))

    def header_by_number(self, request: evm.HeaderByNumberRequest) -> evm.HeaderByNumberReply:
        number = request.block_number if request.block_number >= 0 else self.block_number
        return evm.HeaderByNumberReply(header=evm.Header(number=number))

    def filter_logs(self, request: evm.FilterLogsRequest) -> evm.FilterLogsReply:
        query = request.query
        addresses = {to_checksum_address(a) for a in query.addresses}
        logs = [
            log for log in self.logs
            if (not addresses or to_checksum_address(log.address) in addresses)
            and _topics_match(log.topics, query.topics)
            and (query.from_block is None or (log.block_number or 0) >= query.from_block)
            and (query.to_block is None or (log.block_number or 0) <= query.to_block)
        ]
        return evm.FilterLogsReply(logs=logs)

    def write_report(self, request: evm.WriteReportRequest) -> evm.WriteReportReply:
        self.written_reports.append(request)
        return evm.WriteReportReply(tx_status='SUCCESS', tx_hash=keccak(request.report.raw_report))


# =============================================================================
# SOLANA
# =============================================================================

class SolanaClientCapabilityMock(_RecordingCapability):
    """Mock of the Solana client capability backed by an account map."""

    def __init__(self, chain_selector: int):
        super().__init__()
        self.chain_selector = chain_selector
        self.capability_id = solana.capability_id_for(chain_selector)
        self.accounts: Dict[Pubkey, solana.AccountInfo] = {}
        self.written_reports: List[solana.WriteReportRequest] = []

    def add_account(self, address: Pubkey, data: bytes, owner: Optional[Pubkey] = None) -> None:
        self.accounts[address] = solana.AccountInfo(data=bytes(data), owner=owner)

    def get_account_info(self, request: solana.GetAccountInfoRequest) -> solana.GetAccountInfoReply:
        return solana.GetAccountInfoReply(value=self.accounts.get(request.account))

    def write_report(self, request: solana.WriteReportRequest) -> solana.WriteReportReply:
        self.written_reports.append(request)
        return solana.WriteReportReply(tx_status='SUCCESS', tx_signature=keccak(request.report.raw_report))
