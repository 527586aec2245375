import pytest

from fastsync.merkle import (
    MerkleTreeSnapshot,
    ProtoMerkleSnapshot,
    ProtoSnapshotConfig,
    ProtoSnapshotNode,
    SnapshotConfig,
    SnapshotNode,
    merkle_snapshot_to_proto,
    proto_to_merkle_snapshot,
)


def _root(fill: int) -> bytes:
    return bytes([fill]) * 32


def _leaf(fill: int, start: int) -> SnapshotNode:
    return SnapshotNode(root=_root(fill), start=start, count=1, data=b"leaf", has_data=True)


def _snapshot(peaks):
    return MerkleTreeSnapshot(
        version=1,
        config=SnapshotConfig(block_merge=16, expected_total=10000),
        total_blocks=1000,
        expected_next_height=1001,
        enforce_heights=True,
        in_chunk_elems=[b"a", b"b"],
        in_chunk_start=992,
        peaks=peaks,
    )


def test_none_passes_through_both_ways():
    assert merkle_snapshot_to_proto(None) is None
    assert proto_to_merkle_snapshot(None) is None


def test_round_trip_with_tree_and_empty_slots():
    parent = SnapshotNode(left=_leaf(1, 0), right=_leaf(2, 1), root=_root(3), start=0, count=2)
    original = _snapshot([None, parent, None, _leaf(4, 2)])
    restored = proto_to_merkle_snapshot(merkle_snapshot_to_proto(original))
    assert restored == original


def test_scalar_fields_carried_to_wire():
    proto = merkle_snapshot_to_proto(_snapshot([]))
    assert proto.version == 1
    assert proto.config == ProtoSnapshotConfig(block_merge=16, expected_total=10000)
    assert proto.total_blocks == 1000
    assert proto.expected_next_height == 1001
    assert proto.enforce_heights is True
    assert proto.in_chunk_elems == [b"a", b"b"]
    assert proto.in_chunk_start == 992


def test_empty_peak_becomes_sentinel_with_empty_root():
    proto = merkle_snapshot_to_proto(_snapshot([None, _leaf(5, 0)]))
    assert len(proto.peaks) == 2
    assert proto.peaks[0].root == b""
    assert proto.peaks[1].root == _root(5)


def test_missing_children_encode_as_sentinels():
    proto = merkle_snapshot_to_proto(_snapshot([_leaf(6, 0)]))
    peak = proto.peaks[0]
    assert peak.left.root == b""
    assert peak.right.root == b""
    assert peak.left.left is None


def test_none_peaks_kept_distinct_from_empty():
    assert merkle_snapshot_to_proto(_snapshot(None)).peaks is None
    assert merkle_snapshot_to_proto(_snapshot([])).peaks == []
    assert proto_to_merkle_snapshot(merkle_snapshot_to_proto(_snapshot(None))).peaks is None


@pytest.mark.parametrize("root", [b"", b"\x01" * 31, b"\x01" * 33])
def test_node_with_wrong_root_length_decodes_to_none(root):
    message = ProtoMerkleSnapshot(
        config=ProtoSnapshotConfig(),
        peaks=[ProtoSnapshotNode(root=root), ProtoSnapshotNode(root=_root(7))],
    )
    decoded = proto_to_merkle_snapshot(message)
    assert decoded.peaks[0] is None
    assert decoded.peaks[1].root == _root(7)


def test_none_proto_peak_decodes_to_none():
    message = ProtoMerkleSnapshot(config=ProtoSnapshotConfig(), peaks=[None])
    assert proto_to_merkle_snapshot(message).peaks == [None]


def test_missing_config_is_rejected():
    with pytest.raises(ValueError):
        proto_to_merkle_snapshot(ProtoMerkleSnapshot(config=None))


def test_in_chunk_elems_are_copied():
    original = _snapshot([])
    proto = merkle_snapshot_to_proto(original)
    proto.in_chunk_elems.append(b"c")
    assert original.in_chunk_elems == [b"a", b"b"]


def test_version_narrowed_to_int32_on_wire():
    snapshot = _snapshot([])
    snapshot.version = 2**31
    assert merkle_snapshot_to_proto(snapshot).version == -(2**31)