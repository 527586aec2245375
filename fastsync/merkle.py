"""Conversion of Merkle tree snapshots between domain and wire forms.

Peaks form a sparse accumulator: an empty slot is ``None`` in the domain form
and travels as a sentinel node with an empty root so its index is kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ROOT_LENGTH = 32


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


@dataclass
class SnapshotConfig:
    """Domain form of the tree configuration."""

    block_merge: int = 0
    expected_total: int = 0


@dataclass
class SnapshotNode:
    """Domain form of one tree node."""

    left: SnapshotNode | None = None
    right: SnapshotNode | None = None
    root: bytes = b""
    start: int = 0
    count: int = 0
    data: bytes = b""
    has_data: bool = False


@dataclass
class MerkleTreeSnapshot:
    """Domain form of a Merkle tree snapshot."""

    version: int = 0
    config: SnapshotConfig = field(default_factory=SnapshotConfig)
    total_blocks: int = 0
    expected_next_height: int = 0
    enforce_heights: bool = False
    in_chunk_elems: list[bytes] = field(default_factory=list)
    in_chunk_start: int = 0
    peaks: list[SnapshotNode | None] | None = None


@dataclass
class ProtoSnapshotConfig:
    """Wire form of the tree configuration."""

    block_merge: int = 0
    expected_total: int = 0


@dataclass
class ProtoSnapshotNode:
    """Wire form of one tree node; an empty root marks an empty slot."""

    left: ProtoSnapshotNode | None = None
    right: ProtoSnapshotNode | None = None
    root: bytes = b""
    start: int = 0
    count: int = 0
    data: bytes = b""
    has_data: bool = False


@dataclass
class ProtoMerkleSnapshot:
    """Wire form of a Merkle tree snapshot."""

    version: int = 0
    config: ProtoSnapshotConfig | None = None
    total_blocks: int = 0
    expected_next_height: int = 0
    enforce_heights: bool = False
    in_chunk_elems: list[bytes] = field(default_factory=list)
    in_chunk_start: int = 0
    peaks: list[ProtoSnapshotNode] | None = None


def _node_to_proto(node: SnapshotNode | None) -> ProtoSnapshotNode:
    if node is None:
        return ProtoSnapshotNode(root=b"")
    return ProtoSnapshotNode(
        left=_node_to_proto(node.left),
        right=_node_to_proto(node.right),
        root=node.root,
        start=node.start,
        count=node.count,
        data=node.data,
        has_data=node.has_data,
    )


def _proto_to_node(node: ProtoSnapshotNode | None) -> SnapshotNode | None:
    if node is None or len(node.root) != ROOT_LENGTH:
        return None
    return SnapshotNode(
        left=_proto_to_node(node.left),
        right=_proto_to_node(node.right),
        root=node.root,
        start=node.start,
        count=node.count,
        data=node.data,
        has_data=node.has_data,
    )


def merkle_snapshot_to_proto(snapshot: MerkleTreeSnapshot | None) -> ProtoMerkleSnapshot | None:
    """Convert a domain snapshot to its wire form; None stays None."""
    if snapshot is None:
        return None
    return ProtoMerkleSnapshot(
        version=_to_int32(snapshot.version),
        config=ProtoSnapshotConfig(
            block_merge=_to_int32(snapshot.config.block_merge),
            expected_total=snapshot.config.expected_total,
        ),
        total_blocks=snapshot.total_blocks,
        expected_next_height=snapshot.expected_next_height,
        enforce_heights=snapshot.enforce_heights,
        in_chunk_elems=list(snapshot.in_chunk_elems),
        in_chunk_start=snapshot.in_chunk_start,
        peaks=None if snapshot.peaks is None else [_node_to_proto(p) for p in snapshot.peaks],
    )


def proto_to_merkle_snapshot(message: ProtoMerkleSnapshot | None) -> MerkleTreeSnapshot | None:
    """Convert a wire snapshot to its domain form; None stays None.

    Raises ValueError when the snapshot carries no configuration.
    """
    if message is None:
        return None
    if message.config is None:
        raise ValueError("merkle snapshot has no config")
    return MerkleTreeSnapshot(
        version=message.version,
        config=SnapshotConfig(
            block_merge=message.config.block_merge,
            expected_total=message.config.expected_total,
        ),
        total_blocks=message.total_blocks,
        expected_next_height=message.expected_next_height,
        enforce_heights=message.enforce_heights,
        in_chunk_elems=list(message.in_chunk_elems),
        in_chunk_start=message.in_chunk_start,
        peaks=None if message.peaks is None else [_proto_to_node(p) for p in message.peaks],
    )