from fastsync.blocks import (
    ADDRESS_LENGTH,
    HASH_LENGTH,
    ProtoTransaction,
    ProtoZKBlock,
    Transaction,
    ZKBlock,
    bytes_to_address,
    bytes_to_hash,
    bytes_to_int,
    int_to_bytes,
    proto_to_zkblock,
    zkblock_to_proto,
)


def _full_proto_block():
    tx = ProtoTransaction(
        hash=bytes(range(32)),
        type=2,
        timestamp=1700,
        nonce=7,
        gas_limit=21000,
        data=b"payload",
        value=int_to_bytes(10**18),
        chain_id=int_to_bytes(1),
        gas_price=int_to_bytes(5),
        max_fee=int_to_bytes(9),
        max_priority_fee=int_to_bytes(3),
        v=int_to_bytes(27),
        r=int_to_bytes(12345),
        s=int_to_bytes(67890),
        from_address=bytes([0xAA] * 20),
        to_address=bytes([0xBB] * 20),
    )
    return ProtoZKBlock(
        stark_proof=b"proof",
        commitment=[1, 2, 3],
        proof_hash="ph",
        status="confirmed",
        txns_root="root",
        timestamp=1700,
        extra_data="extra",
        logs_bloom=b"\x00\x01",
        gas_limit=30000000,
        gas_used=21000,
        block_number=12345,
        state_root=bytes([1] * 32),
        prev_hash=bytes([2] * 32),
        block_hash=bytes([3] * 32),
        coinbase_addr=bytes([4] * 20),
        zkvm_addr=bytes([5] * 20),
        transactions=[tx],
    )


def test_bytes_to_hash_left_pads():
    result = bytes_to_hash(b"\x01")
    assert len(result) == HASH_LENGTH
    assert result == b"\x00" * 31 + b"\x01"


def test_bytes_to_hash_keeps_last_bytes():
    data = bytes(range(40))
    assert bytes_to_hash(data) == data[-32:]


def test_bytes_to_address_sizes():
    assert bytes_to_address(b"") == bytes(ADDRESS_LENGTH)
    data = bytes(range(25))
    assert bytes_to_address(data) == data[-20:]


def test_bytes_to_int_empty_is_none():
    assert bytes_to_int(b"") is None
    assert bytes_to_int(b"\x01\x00") == 256


def test_int_to_bytes_is_big_endian_minimal():
    assert int_to_bytes(256) == b"\x01\x00"
    assert int_to_bytes(None) == b""
    assert int_to_bytes(0) == b""


def test_int_round_trip():
    for value in (1, 255, 10**18, 2**200 + 3):
        assert bytes_to_int(int_to_bytes(value)) == value


def test_proto_round_trip_preserves_block():
    message = _full_proto_block()
    assert zkblock_to_proto(proto_to_zkblock(message)) == message


def test_proto_to_zkblock_converts_fields():
    block = proto_to_zkblock(_full_proto_block())
    assert block.block_number == 12345
    assert block.coinbase_addr == bytes([4] * 20)
    tx = block.transactions[0]
    assert tx.value == 10**18
    assert tx.from_address == bytes([0xAA] * 20)
    assert tx.nonce == 7


def test_missing_addresses_become_none():
    block = proto_to_zkblock(ProtoZKBlock(transactions=[ProtoTransaction()]))
    assert block.coinbase_addr is None
    assert block.zkvm_addr is None
    assert block.transactions[0].to_address is None
    assert block.transactions[0].value is None


def test_zkblock_to_proto_emits_fixed_size_hashes():
    message = zkblock_to_proto(ZKBlock(block_number=3, transactions=[Transaction()]))
    assert len(message.state_root) == HASH_LENGTH
    assert len(message.transactions[0].hash) == HASH_LENGTH
    assert message.coinbase_addr == b""
    assert message.transactions[0].value == b""


def test_short_hash_is_padded_through_conversion():
    block = proto_to_zkblock(ProtoZKBlock(block_hash=b"\x07"))
    assert block.block_hash == b"\x00" * 31 + b"\x07"