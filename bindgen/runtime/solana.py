"""
Solana client capability surface used by generated program bindings.

Besides the request/reply records of the Solana capability this module
provides the Borsh building blocks generated code relies on: the BorshType
and Program base classes, 256-bit integer and public key layouts, the
ForwarderReport wrapper and discriminator handling.
"""

import typing
from dataclasses import dataclass, field, is_dataclass
from hashlib import sha256
from typing import Any, Callable, ClassVar, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

import borsh_construct as borsh
from construct import Adapter, Bytes as FixedBytes, BytesInteger, Construct
from solders.pubkey import Pubkey

from .promise import Promise
from .sdk import Report, ReportEncoding, ReportRequest, Runtime


REPORT_ENCODING = ReportEncoding(encoder='solana', signing_algo='ed25519', hashing_algo='sha256')

DISCRIMINATOR_LENGTH = 8
ACCOUNT_HASH_LENGTH = 32
MAX_SUB_KEY_FILTERS = 4

T = TypeVar('T')


# =============================================================================
# BORSH LAYOUTS
# =============================================================================

class _PubkeyAdapter(Adapter):
    def _decode(self, obj, context, path):
        return Pubkey.from_bytes(obj)

    def _encode(self, obj, context, path):
        return bytes(obj)


BorshPubkey = _PubkeyAdapter(FixedBytes(32))
U256 = BytesInteger(32, signed=False, swapped=True)
I256 = BytesInteger(32, signed=True, swapped=True)


class BorshType:
    """
    Base class of generated Borsh-serializable types.

    Subclasses define a class-level construct `layout` plus
    from_decoded()/to_encodable() converting between the parsed construct
    container and the typed object.
    """

    layout: ClassVar[Construct]

    @classmethod
    def from_decoded(cls, obj: Any) -> Any:
        raise NotImplementedError

    def to_encodable(self) -> Any:
        raise NotImplementedError

    def marshal(self) -> bytes:
        return self.layout.build(self.to_encodable())

    @classmethod
    def unmarshal(cls, data: bytes) -> Any:
        return cls.from_decoded(cls.layout.parse(data))


@dataclass
class ForwarderReport(BorshType):
    """Payload wrapper handed to the consensus layer for Solana writes."""
    account_hash: bytes
    payload: bytes

    layout: ClassVar[Construct] = borsh.CStruct(
        'account_hash' / FixedBytes(ACCOUNT_HASH_LENGTH),
        'payload' / borsh.Bytes,
    )

    @classmethod
    def from_decoded(cls, obj: Any) -> 'ForwarderReport':
        return cls(account_hash=bytes(obj['account_hash']), payload=bytes(obj['payload']))

    def to_encodable(self) -> Dict[str, Any]:
        return {'account_hash': self.account_hash, 'payload': self.payload}


def account_hash(accounts: Sequence[Pubkey]) -> bytes:
    """32 zero bytes for no accounts, otherwise sha256 over the concatenated keys."""
    if not accounts:
        return bytes(ACCOUNT_HASH_LENGTH)
    return sha256(b''.join(bytes(account) for account in accounts)).digest()


def strip_discriminator(data: bytes, discriminator: bytes, name: str) -> bytes:
    """
    Check and remove the 8-byte discriminator in front of data.

    Raises:
        ValueError: If data is too short or starts with another discriminator
    """
    data = bytes(data)
    if len(data) < DISCRIMINATOR_LENGTH:
        raise ValueError(f'{name}: data too short for discriminator ({len(data)} bytes)')
    if data[:DISCRIMINATOR_LENGTH] != discriminator:
        raise ValueError(
            f'{name}: wrong discriminator, expected {discriminator.hex()}, '
            f'got {data[:DISCRIMINATOR_LENGTH].hex()}'
        )
    return data[DISCRIMINATOR_LENGTH:]


# =============================================================================
# REQUESTS AND REPLIES
# =============================================================================

class AccountNotFound(LookupError):
    """get_account_info returned no account."""


@dataclass
class GetAccountInfoRequest:
    account: Pubkey
    min_context_slot: Optional[int] = None


@dataclass
class AccountInfo:
    data: bytes
    owner: Optional[Pubkey] = None
    lamports: int = 0
    executable: bool = False


@dataclass
class GetAccountInfoReply:
    value: Optional[AccountInfo] = None


@dataclass(frozen=True)
class InstructionAccountMeta:
    """An account an instruction expects, as declared in the IDL."""
    name: str
    writable: bool = False
    signer: bool = False
    optional: bool = False
    address: Optional[str] = None


def account_data(reply: GetAccountInfoReply, address: Pubkey) -> bytes:
    """Raw data of the account in reply; raises AccountNotFound if absent."""
    if reply.value is None:
        raise AccountNotFound(f'account not found: {address}')
    return bytes(reply.value.data)


@dataclass
class WriteReportRequest:
    receiver: Pubkey
    report: Report
    remaining_accounts: List[Pubkey] = field(default_factory=list)


@dataclass
class WriteReportReply:
    tx_status: str
    tx_signature: Optional[bytes] = None
    error_message: Optional[str] = None


@dataclass
class Log:
    address: Pubkey
    data: bytes
    slot: Optional[int] = None
    tx_signature: Optional[bytes] = None


@dataclass
class SubKeyPathAndValue:
    """Filter an event field (dotted path) to equal value."""
    path: str
    value: Any


@dataclass
class SubKeyFilter:
    sub_key_index: int
    value: Any
    operator: str = 'eq'


@dataclass
class FilterLogTriggerRequest:
    address: Pubkey
    event_name: str
    event_sig: bytes
    event_idl: Dict[str, Any]
    sub_key_paths: List[List[str]] = field(default_factory=list)
    sub_key_filters: List[SubKeyFilter] = field(default_factory=list)


@dataclass
class DecodedLog(Generic[T]):
    """A decoded event together with the raw log it came from."""
    data: T
    raw_log: Log


# =============================================================================
# SUB-KEY FILTERS
# =============================================================================

class SubKeyPathError(ValueError):
    """A sub-key filter does not match the event's field types."""


def _leaf_type(root: type, parts: List[str], path: str) -> Any:
    current: Any = root
    for index, name in enumerate(parts):
        if not (isinstance(current, type) and is_dataclass(current)):
            raise SubKeyPathError(f'path {path!r}: segment {name!r} at #{index}: {current} is not a struct')
        hints = typing.get_type_hints(current)
        if name not in hints or name == 'layout':
            raise SubKeyPathError(f'path {path!r}: field {name!r} not found on {current.__name__}')
        current = hints[name]
    return current


def _matches(value: Any, hint: Any) -> bool:
    origin = typing.get_origin(hint)
    if origin is typing.Union:
        return any(_matches(value, arg) for arg in typing.get_args(hint) if arg is not type(None))
    if origin in (list, List):
        return isinstance(value, list)
    if hint is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if isinstance(hint, type):
        return isinstance(value, hint)
    return True


def validate_sub_key_paths(
    event_cls: type,
    pairs: Optional[Sequence[SubKeyPathAndValue]],
) -> Tuple[List[List[str]], List[SubKeyFilter]]:
    """
    Check sub-key filters against the fields of a generated event class.

    Returns:
        The split paths and one equality filter per pair

    Raises:
        SubKeyPathError: On more than 4 pairs, unknown fields, struct
            leaves, None values or values of the wrong type
    """
    pairs = list(pairs or [])
    if len(pairs) > MAX_SUB_KEY_FILTERS:
        raise SubKeyPathError(f'too many subkey path and value pairs: {len(pairs)}')

    paths: List[List[str]] = []
    filters: List[SubKeyFilter] = []
    for index, pair in enumerate(pairs):
        parts = [part for part in pair.path.split('.') if part]
        if not parts:
            raise SubKeyPathError(f'empty subkey path at index {index}')
        leaf = _leaf_type(event_cls, parts, pair.path)
        if isinstance(leaf, type) and is_dataclass(leaf):
            raise SubKeyPathError(
                f'path {pair.path!r} resolves to a struct ({leaf.__name__}); expected a scalar/leaf'
            )
        if pair.value is None:
            raise SubKeyPathError(f'path {pair.path!r}: got None for field type {leaf}')
        if not _matches(pair.value, leaf):
            raise SubKeyPathError(
                f'path {pair.path!r}: value type {type(pair.value).__name__} '
                f'not assignable to field type {leaf}'
            )
        paths.append(parts)
        filters.append(SubKeyFilter(sub_key_index=index, value=pair.value))
    return paths, filters


# =============================================================================
# CLIENT AND TRIGGERS
# =============================================================================

class LogTrigger:
    """
    A Solana log trigger registration.

    Generated <Event>Trigger classes override adapt() to decode the raw log.
    """

    def __init__(self, capability_id: str, request: FilterLogTriggerRequest):
        self.capability_id = capability_id
        self.request = request

    def adapt(self, log: Log) -> Any:
        return log


class Client:
    """
    Solana client bound to one cluster.

    All calls are routed through the runtime to the capability
    'solana:ChainSelector:<chain_selector>@1.0.0'.
    """

    def __init__(self, chain_selector: int):
        self.chain_selector = chain_selector

    @property
    def capability_id(self) -> str:
        return capability_id_for(self.chain_selector)

    def get_account_info(self, runtime: Runtime, request: GetAccountInfoRequest) -> Promise[GetAccountInfoReply]:
        return runtime.call_capability(self.capability_id, 'GetAccountInfo', request)

    def write_report(self, runtime: Runtime, request: WriteReportRequest) -> Promise[WriteReportReply]:
        return runtime.call_capability(self.capability_id, 'WriteReport', request)


def capability_id_for(chain_selector: int) -> str:
    return f'solana:ChainSelector:{chain_selector}@1.0.0'


# =============================================================================
# PROGRAM BASE
# =============================================================================

class Program:
    """
    Base class of generated program clients.

    Subclasses set `program_id` and `codec` and add one method per account,
    event and defined type of the program.
    """

    program_id: Pubkey = Pubkey.default()
    codec: Any = None

    def __init__(self, client: Client):
        self.client = client

    def write_report(
        self,
        runtime: Runtime,
        report: Report,
        remaining_accounts: Optional[Sequence[Pubkey]] = None,
    ) -> Promise[WriteReportReply]:
        """Submit a signed report to the program's forwarder receiver."""
        request = WriteReportRequest(
            receiver=self.program_id,
            report=report,
            remaining_accounts=list(remaining_accounts or []),
        )
        return self.client.write_report(runtime, request)

    def _read_account(self, runtime: Runtime, address: Pubkey, block_number: Optional[int]) -> Promise[bytes]:
        request = GetAccountInfoRequest(account=address, min_context_slot=block_number)
        return self.client.get_account_info(runtime, request).then(lambda reply: account_data(reply, address))

    def _write_encoded(
        self,
        runtime: Runtime,
        encode: Callable[[], bytes],
        remaining_accounts: Optional[Sequence[Pubkey]],
    ) -> Promise[WriteReportReply]:
        accounts = list(remaining_accounts or [])

        def wrap() -> bytes:
            report = ForwarderReport(account_hash=account_hash(accounts), payload=encode())
            return report.marshal()

        return (
            Promise.attempt(wrap)
            .then_promise(lambda payload: runtime.generate_report(ReportRequest.for_payload(payload, REPORT_ENCODING)))
            .then_promise(lambda report: self.write_report(runtime, report, accounts))
        )
