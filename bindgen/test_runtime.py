#!/usr/bin/env python3
"""
Unit tests for the runtime support package.

Run with: python3 -m pytest bindgen/test_runtime.py
   or: cd .. && python3 bindgen/test_runtime.py
"""

import sys
import os
# Add parent directory to path for proper imports - MUST be before other imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest
from dataclasses import dataclass
from hashlib import sha256
from typing import List, Optional

from eth_abi import encode
from eth_utils import keccak, to_checksum_address
from solders.pubkey import Pubkey

from bindgen.runtime import CapabilityError, Promise, ReportRequest, Runtime
from bindgen.runtime import evm, solana, topics
from bindgen.runtime.testing import (
    ConsensusCapabilityMock,
    EvmClientCapabilityMock,
    SolanaClientCapabilityMock,
    new_runtime,
)


ADDRESS = to_checksum_address('0x' + '11' * 20)
OTHER_ADDRESS = to_checksum_address('0x' + '22' * 20)


@dataclass
class Inner:
    amount: int
    label: str


@dataclass
class SampleEvent:
    owner: str
    inner: Inner
    tags: List[str]
    note: Optional[str] = None


class TestPromise(unittest.TestCase):
    """Test lazy evaluation and chaining."""

    def test_lazy(self):
        """Test that nothing runs before result()."""
        calls = []
        promise = Promise(lambda: calls.append(1) or 5)
        self.assertFalse(promise.done)
        self.assertEqual(calls, [])
        self.assertEqual(promise.result(), 5)
        self.assertEqual(promise.result(), 5)
        self.assertEqual(calls, [1])

    def test_then_chain(self):
        """Test then and then_promise."""
        promise = Promise.resolved(2).then(lambda x: x * 3).then_promise(lambda x: Promise.resolved(x + 1))
        self.assertEqual(promise.result(), 7)

    def test_error_propagates(self):
        """Test that a failure skips later steps."""
        steps = []
        promise = Promise.failed(ValueError('boom')).then(lambda x: steps.append(x))
        with self.assertRaises(ValueError):
            promise.result()
        self.assertEqual(steps, [])

    def test_attempt(self):
        """Test that attempt captures exceptions."""
        promise = Promise.attempt(lambda: 1 // 0)
        self.assertTrue(promise.done)
        with self.assertRaises(ZeroDivisionError):
            promise.result()


class TestRuntime(unittest.TestCase):
    """Test capability routing."""

    def test_unregistered_capability(self):
        """Test that calling a missing capability fails on evaluation."""
        promise = Runtime().call_capability('evm:ChainSelector:1@1.0.0', 'CallContract', None)
        with self.assertRaises(CapabilityError) as ctx:
            promise.result()
        self.assertIn('capability not registered', str(ctx.exception))

    def test_unsupported_method(self):
        """Test that an unknown method name is rejected."""
        mock = EvmClientCapabilityMock(chain_selector=1)
        runtime = new_runtime(mock)
        with self.assertRaises(CapabilityError):
            runtime.call_capability(mock.capability_id, 'SendTransaction', None).result()

    def test_consensus_report(self):
        """Test that the consensus mock echoes the payload."""
        runtime = new_runtime(ConsensusCapabilityMock(signatures=[b'sig']))
        request = ReportRequest.for_payload(b'payload', evm.REPORT_ENCODING)
        report = runtime.generate_report(request).result()
        self.assertEqual(report.raw_report, b'payload')
        self.assertEqual(report.encoder_name, 'evm')
        self.assertEqual(report.signing_algo, 'ecdsa')
        self.assertEqual(report.signatures, [b'sig'])

    def test_capability_ids(self):
        """Test capability id formats."""
        self.assertEqual(evm.capability_id_for(16015286601757825753),
                         'evm:ChainSelector:16015286601757825753@1.0.0')
        self.assertEqual(solana.capability_id_for(7), 'solana:ChainSelector:7@1.0.0')


class TestTopics(unittest.TestCase):
    """Test indexed topic encoding."""

    def test_value_type_topic(self):
        """Test that value types are their 32-byte encoding."""
        self.assertEqual(topics.encode_topic('uint256', 1), (1).to_bytes(32, 'big'))
        topic = topics.encode_topic('address', ADDRESS)
        self.assertEqual(topic, bytes(12) + bytes.fromhex('11' * 20))
        self.assertEqual(to_checksum_address(topics.decode_topic('address', topic)), ADDRESS)

    def test_hashed_topic(self):
        """Test that strings are hashed and decode to the hash."""
        topic = topics.encode_topic('string', 'hello')
        self.assertEqual(topic, keccak(encode(['string'], ['hello'])))
        self.assertEqual(topics.decode_topic('string', topic), topic)

    def test_pre_hashed_topic(self):
        """Test that a pre-hashed value is used verbatim."""
        value = topics.PreHashedTopic(b'\x01' * 32)
        self.assertEqual(topics.encode_topic('string', value), b'\x01' * 32)
        with self.assertRaises(ValueError):
            topics.PreHashedTopic(b'\x01')

    def test_is_hashed_topic(self):
        """Test the hashed-topic predicate."""
        for abi_type in ('string', 'bytes', 'uint256[]', 'bytes[]', '(string,string)'):
            self.assertTrue(topics.is_hashed_topic(abi_type), abi_type)
        for abi_type in ('address', 'bytes32', 'bool', 'int8'):
            self.assertFalse(topics.is_hashed_topic(abi_type), abi_type)

    def test_encode_topics(self):
        """Test the OR-of-variants filter layout."""
        topic0 = b'\xaa' * 32
        result = topics.encode_topics(topic0, [
            ('uint256', [1, 2], None),
            ('address', [None], None),
        ])
        self.assertEqual(result[0], [topic0])
        self.assertEqual(result[1], [(1).to_bytes(32, 'big'), (2).to_bytes(32, 'big')])
        self.assertEqual(result[2], [])

    def test_decode_wrong_length(self):
        """Test that a short topic is rejected."""
        with self.assertRaises(ValueError):
            topics.decode_topic('uint256', b'\x00')


class TestEvmContractBase(unittest.TestCase):
    """Test the Contract base class against the EVM mock."""

    def setUp(self):
        self.evm_mock = EvmClientCapabilityMock(chain_selector=1, block_number=42)
        self.runtime = new_runtime(self.evm_mock, ConsensusCapabilityMock())
        self.contract = evm.Contract(evm.Client(1), ADDRESS.lower())

    def test_checksummed_address(self):
        """Test that the contract address is checksummed."""
        self.assertEqual(self.contract.address, ADDRESS)

    def test_call_defaults_to_finalized_block(self):
        """Test that a read without block number asks for the finalized header."""
        self.evm_mock.add_contract_mock(ADDRESS, lambda data: data[::-1])
        result = self.contract._call_contract(self.runtime, b'\x01\x02', None).result()
        self.assertEqual(result, b'\x02\x01')
        methods = [method for method, _ in self.evm_mock.requests]
        self.assertEqual(methods, ['HeaderByNumber', 'CallContract'])
        self.assertEqual(self.evm_mock.requests[0][1].block_number, evm.FINALIZED_BLOCK_NUMBER)
        self.assertEqual(self.evm_mock.requests[1][1].block_number, 42)

    def test_call_explicit_block(self):
        """Test that an explicit block number skips the header request."""
        self.evm_mock.add_contract_mock(ADDRESS, lambda data: b'')
        self.contract._call_contract(self.runtime, b'', 7).result()
        self.assertEqual([m for m, _ in self.evm_mock.requests], ['CallContract'])
        self.assertEqual(self.evm_mock.requests[0][1].block_number, 7)

    def test_write_uses_default_gas_config(self):
        """Test that the contract options supply the gas config."""
        contract = evm.Contract(
            evm.Client(1), ADDRESS, evm.ContractOptions(gas_config=evm.GasConfig(gas_limit=500000)),
        )
        reply = contract._write_encoded(self.runtime, lambda: b'payload', None).result()
        self.assertEqual(reply.tx_status, 'SUCCESS')
        written = self.evm_mock.written_reports[0]
        self.assertEqual(written.receiver, ADDRESS)
        self.assertEqual(written.report.raw_report, b'payload')
        self.assertEqual(written.gas_config.gas_limit, 500000)

    def test_write_encoding_error_in_promise(self):
        """Test that an encoding failure surfaces through the promise."""
        def fail():
            raise ValueError('bad value')
        promise = self.contract._write_encoded(self.runtime, fail, None)
        with self.assertRaises(ValueError):
            promise.result()
        self.assertEqual(self.evm_mock.written_reports, [])

    def test_filter_logs(self):
        """Test address, topic and block range filtering."""
        topic0 = b'\xaa' * 32
        self.evm_mock.logs = [
            evm.Log(address=ADDRESS, topics=[topic0], data=b'', block_number=5),
            evm.Log(address=ADDRESS, topics=[b'\xbb' * 32], data=b'', block_number=5),
            evm.Log(address=OTHER_ADDRESS, topics=[topic0], data=b'', block_number=5),
            evm.Log(address=ADDRESS, topics=[topic0], data=b'', block_number=50),
        ]
        reply = self.contract._filter_logs(self.runtime, [[topic0]], evm.FilterOptions(to_block=10)).result()
        self.assertEqual(len(reply.logs), 1)
        self.assertIs(reply.logs[0], self.evm_mock.logs[0])

    def test_unknown_error_selector(self):
        """Test the message of UnknownErrorSelector."""
        error = evm.UnknownErrorSelector(bytes.fromhex('deadbeef00'))
        self.assertEqual(str(error), 'unknown error selector 0xdeadbeef')


class TestSolanaHelpers(unittest.TestCase):
    """Test Borsh helpers, report wrapping and sub-key filters."""

    def test_account_hash(self):
        """Test the account hash of zero and two accounts."""
        self.assertEqual(solana.account_hash([]), bytes(32))
        first, second = Pubkey.new_unique(), Pubkey.new_unique()
        self.assertEqual(
            solana.account_hash([first, second]),
            sha256(bytes(first) + bytes(second)).digest(),
        )

    def test_forwarder_report_layout(self):
        """Test the Borsh layout of the forwarder report."""
        report = solana.ForwarderReport(account_hash=b'\x07' * 32, payload=b'abc')
        data = report.marshal()
        self.assertEqual(data, b'\x07' * 32 + (3).to_bytes(4, 'little') + b'abc')
        self.assertEqual(solana.ForwarderReport.unmarshal(data), report)

    def test_strip_discriminator(self):
        """Test discriminator checks."""
        disc = bytes(range(8))
        self.assertEqual(solana.strip_discriminator(disc + b'rest', disc, 'Thing'), b'rest')
        with self.assertRaises(ValueError) as ctx:
            solana.strip_discriminator(b'\x00' * 8, disc, 'Thing')
        self.assertIn('Thing: wrong discriminator', str(ctx.exception))
        with self.assertRaises(ValueError):
            solana.strip_discriminator(b'\x00', disc, 'Thing')

    def test_u256_layout(self):
        """Test the little-endian 256-bit integer layout."""
        self.assertEqual(solana.U256.build(1), b'\x01' + bytes(31))
        self.assertEqual(solana.I256.parse(b'\xff' * 32), -1)

    def test_pubkey_layout(self):
        """Test the public key adapter."""
        key = Pubkey.new_unique()
        self.assertEqual(solana.BorshPubkey.parse(bytes(key)), key)
        self.assertEqual(solana.BorshPubkey.build(key), bytes(key))

    def test_sub_key_paths(self):
        """Test valid sub-key filters."""
        paths, filters = solana.validate_sub_key_paths(SampleEvent, [
            solana.SubKeyPathAndValue('owner', 'alice'),
            solana.SubKeyPathAndValue('inner.amount', 5),
        ])
        self.assertEqual(paths, [['owner'], ['inner', 'amount']])
        self.assertEqual([(f.sub_key_index, f.value) for f in filters], [(0, 'alice'), (1, 5)])

    def test_sub_key_path_errors(self):
        """Test rejected sub-key filters."""
        cases = [
            [solana.SubKeyPathAndValue('missing', 1)],
            [solana.SubKeyPathAndValue('inner', 1)],
            [solana.SubKeyPathAndValue('inner.amount', 'five')],
            [solana.SubKeyPathAndValue('inner.amount', True)],
            [solana.SubKeyPathAndValue('owner', None)],
            [solana.SubKeyPathAndValue('owner.name', 'x')],
            [solana.SubKeyPathAndValue('owner', 'a')] * 5,
        ]
        for pairs in cases:
            with self.subTest(pairs=pairs):
                with self.assertRaises(solana.SubKeyPathError):
                    solana.validate_sub_key_paths(SampleEvent, pairs)

    def test_optional_leaf(self):
        """Test that an Optional field accepts its inner type."""
        paths, _ = solana.validate_sub_key_paths(SampleEvent, [solana.SubKeyPathAndValue('note', 'x')])
        self.assertEqual(paths, [['note']])


class TestSolanaProgramBase(unittest.TestCase):
    """Test the Program base class against the Solana mock."""

    def setUp(self):
        self.solana_mock = SolanaClientCapabilityMock(chain_selector=3)
        self.runtime = new_runtime(self.solana_mock, ConsensusCapabilityMock())
        self.program = solana.Program(solana.Client(3))
        self.program.program_id = Pubkey.new_unique()

    def test_read_account(self):
        """Test account reads and missing accounts."""
        address = Pubkey.new_unique()
        self.solana_mock.add_account(address, b'data')
        self.assertEqual(self.program._read_account(self.runtime, address, None).result(), b'data')
        with self.assertRaises(solana.AccountNotFound):
            self.program._read_account(self.runtime, Pubkey.new_unique(), None).result()

    def test_write_wraps_forwarder_report(self):
        """Test that writes wrap the payload with the account hash."""
        account = Pubkey.new_unique()
        reply = self.program._write_encoded(self.runtime, lambda: b'payload', [account]).result()
        self.assertEqual(reply.tx_status, 'SUCCESS')
        written = self.solana_mock.written_reports[0]
        self.assertEqual(written.receiver, self.program.program_id)
        self.assertEqual(written.remaining_accounts, [account])
        self.assertEqual(written.report.encoder_name, 'solana')
        wrapped = solana.ForwarderReport.unmarshal(written.report.raw_report)
        self.assertEqual(wrapped.payload, b'payload')
        self.assertEqual(wrapped.account_hash, sha256(bytes(account)).digest())


if __name__ == '__main__':
    # Run tests with verbosity
    unittest.main(verbosity=2)
