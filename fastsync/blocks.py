"""Block and transaction records, and conversion between wire and domain forms."""

from __future__ import annotations

from dataclasses import dataclass, field

HASH_LENGTH = 32
ADDRESS_LENGTH = 20


@dataclass
class BlockHeader:
    """Wire form of a block header."""

    block_number: int = 0
    block_hash: bytes = b""
    prev_hash: bytes = b""
    timestamp: int = 0
    status: str = ""
    coinbase_addr: bytes = b""
    zkvm_addr: bytes = b""


@dataclass
class ProtoTransaction:
    """Wire form of a transaction; numbers travel as big-endian bytes."""

    hash: bytes = b""
    type: int = 0
    timestamp: int = 0
    nonce: int = 0
    gas_limit: int = 0
    data: bytes = b""
    value: bytes = b""
    chain_id: bytes = b""
    gas_price: bytes = b""
    max_fee: bytes = b""
    max_priority_fee: bytes = b""
    v: bytes = b""
    r: bytes = b""
    s: bytes = b""
    from_address: bytes = b""
    to_address: bytes = b""


@dataclass
class ProtoZKBlock:
    """Wire form of a ZK block."""

    stark_proof: bytes = b""
    commitment: list[int] = field(default_factory=list)
    proof_hash: str = ""
    status: str = ""
    txns_root: str = ""
    timestamp: int = 0
    extra_data: str = ""
    logs_bloom: bytes = b""
    gas_limit: int = 0
    gas_used: int = 0
    block_number: int = 0
    state_root: bytes = b""
    prev_hash: bytes = b""
    block_hash: bytes = b""
    coinbase_addr: bytes = b""
    zkvm_addr: bytes = b""
    transactions: list[ProtoTransaction] = field(default_factory=list)


@dataclass
class Transaction:
    """Domain form of a transaction."""

    hash: bytes = bytes(HASH_LENGTH)
    type: int = 0
    timestamp: int = 0
    nonce: int = 0
    gas_limit: int = 0
    data: bytes = b""
    value: int | None = None
    chain_id: int | None = None
    gas_price: int | None = None
    max_fee: int | None = None
    max_priority_fee: int | None = None
    v: int | None = None
    r: int | None = None
    s: int | None = None
    from_address: bytes | None = None
    to_address: bytes | None = None


@dataclass
class ZKBlock:
    """Domain form of a ZK block with fixed-size hashes and optional addresses."""

    stark_proof: bytes = b""
    commitment: list[int] = field(default_factory=list)
    proof_hash: str = ""
    status: str = ""
    txns_root: str = ""
    timestamp: int = 0
    extra_data: str = ""
    logs_bloom: bytes = b""
    gas_limit: int = 0
    gas_used: int = 0
    block_number: int = 0
    state_root: bytes = bytes(HASH_LENGTH)
    prev_hash: bytes = bytes(HASH_LENGTH)
    block_hash: bytes = bytes(HASH_LENGTH)
    coinbase_addr: bytes | None = None
    zkvm_addr: bytes | None = None
    transactions: list[Transaction] = field(default_factory=list)


def _fit(data: bytes, size: int) -> bytes:
    data = bytes(data)[-size:] if data else b""
    return data.rjust(size, b"\x00")


def bytes_to_hash(data: bytes) -> bytes:
    """Return a 32-byte hash: the last 32 bytes of ``data``, left-padded with zeros."""
    return _fit(data, HASH_LENGTH)


def bytes_to_address(data: bytes) -> bytes:
    """Return a 20-byte address: the last 20 bytes of ``data``, left-padded with zeros."""
    return _fit(data, ADDRESS_LENGTH)


def bytes_to_int(data: bytes) -> int | None:
    """Decode big-endian bytes; empty bytes mean no value."""
    if not data:
        return None
    return int.from_bytes(data, "big")


def int_to_bytes(value: int | None) -> bytes:
    """Encode the magnitude of ``value`` as minimal big-endian bytes; None and 0 give b''."""
    if value is None:
        return b""
    magnitude = abs(value)
    return magnitude.to_bytes((magnitude.bit_length() + 7) // 8, "big")


def _proto_to_transaction(tx: ProtoTransaction) -> Transaction:
    return Transaction(
        hash=bytes_to_hash(tx.hash),
        type=tx.type & 0xFF,
        timestamp=tx.timestamp,
        nonce=tx.nonce,
        gas_limit=tx.gas_limit,
        data=tx.data,
        value=bytes_to_int(tx.value),
        chain_id=bytes_to_int(tx.chain_id),
        gas_price=bytes_to_int(tx.gas_price),
        max_fee=bytes_to_int(tx.max_fee),
        max_priority_fee=bytes_to_int(tx.max_priority_fee),
        v=bytes_to_int(tx.v),
        r=bytes_to_int(tx.r),
        s=bytes_to_int(tx.s),
        from_address=bytes_to_address(tx.from_address) if tx.from_address else None,
        to_address=bytes_to_address(tx.to_address) if tx.to_address else None,
    )


def _transaction_to_proto(tx: Transaction) -> ProtoTransaction:
    return ProtoTransaction(
        hash=bytes(tx.hash),
        type=tx.type,
        timestamp=tx.timestamp,
        nonce=tx.nonce,
        gas_limit=tx.gas_limit,
        data=tx.data,
        value=int_to_bytes(tx.value),
        chain_id=int_to_bytes(tx.chain_id),
        gas_price=int_to_bytes(tx.gas_price),
        max_fee=int_to_bytes(tx.max_fee),
        max_priority_fee=int_to_bytes(tx.max_priority_fee),
        v=int_to_bytes(tx.v),
        r=int_to_bytes(tx.r),
        s=int_to_bytes(tx.s),
        from_address=bytes(tx.from_address) if tx.from_address is not None else b"",
        to_address=bytes(tx.to_address) if tx.to_address is not None else b"",
    )


def proto_to_zkblock(message: ProtoZKBlock) -> ZKBlock:
    """Convert a wire block into its domain form."""
    return ZKBlock(
        stark_proof=message.stark_proof,
        commitment=list(message.commitment),
        proof_hash=message.proof_hash,
        status=message.status,
        txns_root=message.txns_root,
        timestamp=message.timestamp,
        extra_data=message.extra_data,
        logs_bloom=message.logs_bloom,
        gas_limit=message.gas_limit,
        gas_used=message.gas_used,
        block_number=message.block_number,
        state_root=bytes_to_hash(message.state_root),
        prev_hash=bytes_to_hash(message.prev_hash),
        block_hash=bytes_to_hash(message.block_hash),
        coinbase_addr=bytes_to_address(message.coinbase_addr) if message.coinbase_addr else None,
        zkvm_addr=bytes_to_address(message.zkvm_addr) if message.zkvm_addr else None,
        transactions=[_proto_to_transaction(tx) for tx in message.transactions],
    )


def zkblock_to_proto(block: ZKBlock) -> ProtoZKBlock:
    """Convert a domain block into its wire form."""
    return ProtoZKBlock(
        stark_proof=block.stark_proof,
        commitment=list(block.commitment),
        proof_hash=block.proof_hash,
        status=block.status,
        txns_root=block.txns_root,
        timestamp=block.timestamp,
        extra_data=block.extra_data,
        logs_bloom=block.logs_bloom,
        gas_limit=block.gas_limit,
        gas_used=block.gas_used,
        block_number=block.block_number,
        state_root=bytes(block.state_root),
        prev_hash=bytes(block.prev_hash),
        block_hash=bytes(block.block_hash),
        coinbase_addr=bytes(block.coinbase_addr) if block.coinbase_addr is not None else b"",
        zkvm_addr=bytes(block.zkvm_addr) if block.zkvm_addr is not None else b"",
        transactions=[_transaction_to_proto(tx) for tx in block.transactions],
    )