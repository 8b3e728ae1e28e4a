"""
Indexed event topic encoding and decoding.

An indexed parameter of a value type (integers, bool, address, bytes<N>)
is stored in its topic slot as its 32-byte ABI encoding. Every other type
(string, bytes, arrays, tuples) is stored as keccak256 of the ABI encoding
of the value as a one-element tuple; such topics cannot be decoded back to
the value, so decoding returns the hash itself.
"""

from typing import Any, Callable, List, Optional, Sequence, Tuple

from eth_abi import decode, encode
from eth_utils import keccak


TOPIC_LENGTH = 32


class PreHashedTopic(bytes):
    """A 32-byte topic value supplied as-is (e.g. a hash taken from a log)."""

    def __new__(cls, value: bytes):
        if len(value) != TOPIC_LENGTH:
            raise ValueError(f'pre-hashed topic must be {TOPIC_LENGTH} bytes, got {len(value)}')
        return super().__new__(cls, value)


def is_hashed_topic(abi_type: str) -> bool:
    """True iff an indexed parameter of abi_type is stored as a hash."""
    return (
        abi_type in ('string', 'bytes')
        or abi_type.endswith(']')
        or abi_type.startswith('(')
        or abi_type.startswith('tuple')
    )


def encode_topic(abi_type: str, value: Any, convert: Optional[Callable[[Any], Any]] = None) -> bytes:
    """
    Encode one indexed value into its 32-byte topic.

    Args:
        abi_type: Canonical ABI type of the parameter
        value: The value (already in eth-abi form unless convert is given)
        convert: Optional conversion applied to value before ABI encoding

    Returns:
        The topic bytes
    """
    if isinstance(value, PreHashedTopic):
        return bytes(value)
    if convert is not None:
        value = convert(value)
    encoded = encode([abi_type], [value])
    if is_hashed_topic(abi_type):
        return keccak(encoded)
    return encoded


def encode_topics(
    topic0: Optional[bytes],
    slots: Sequence[Tuple[str, Sequence[Any], Optional[Callable[[Any], Any]]]],
) -> List[List[bytes]]:
    """
    Build a topic filter.

    Args:
        topic0: The event signature hash, or None for anonymous events
        slots: One (abi_type, values, convert) entry per indexed parameter,
            values holding one entry per filter variant (None = any)

    Returns:
        [[topic0], slot_1, ..., slot_k]; each slot lists the accepted topic
        values across variants (OR), an empty slot matches anything
    """
    result: List[List[bytes]] = []
    if topic0 is not None:
        result.append([topic0])
    for abi_type, values, convert in slots:
        result.append([encode_topic(abi_type, v, convert) for v in values if v is not None])
    return result


def decode_topic(abi_type: str, topic: bytes) -> Any:
    """Decode a topic; hashed types come back as the raw 32-byte hash."""
    if len(topic) != TOPIC_LENGTH:
        raise ValueError(f'topic must be {TOPIC_LENGTH} bytes, got {len(topic)}')
    if is_hashed_topic(abi_type):
        return bytes(topic)
    return decode([abi_type], bytes(topic))[0]
