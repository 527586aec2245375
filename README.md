# fastsync

Building blocks for synchronising blockchain node state: checksums, framed
messages, a header cache, account balance reconciliation, and conversion of
blocks and merkle snapshots between wire and domain forms.

The package has no runtime dependencies beyond the standard library.

## Modules

### `fastsync.checksum`

`Checksum().create(data, version)` returns the checksum of `data`:

- `VERSION_CRC32` (1) gives 4 bytes, big-endian CRC32.
- `VERSION_SHA256` (2) gives the 32-byte SHA-256 digest.

`Checksum().verify(data, version, expected)` returns `True` when the checksum
matches `expected`. It returns `False` on a mismatch, including a length
mismatch.

Passing `None` as data raises `NilDataError`. An unknown version raises
`UnsupportedChecksumVersionError`. Both errors derive from `ChecksumError`.

### `fastsync.pbstream`

Length-delimited framing in the form `[uvarint length][payload]` over any
binary file-like object:

- `write_delimited(stream, payload)` takes either of:
  - bytes;
  - an object with a `SerializeToString()` method.
- `read_delimited(stream)` returns the payload bytes of the next frame.
- `encode_uvarint(value)` and `read_uvarint(stream)` handle the base-128
  length prefix. Values must fit in an unsigned 64-bit integer.

The following raise `DelimitedStreamError`:

- a zero length;
- a truncated frame;
- an overflowing varint;
- an I/O failure.

### `fastsync.lru_cache`

`LRUCache(capacity)` is a thread-safe least-recently-used cache:

- `get(key)` returns the value, or `None` when the key is absent. A hit marks
  the entry as most recently used.
- `put(key, value)` inserts or replaces an entry. When the cache is full it
  evicts the least recently used entry.
- `remove(key)` drops an entry.
- `len(cache)` gives the number of entries.
- `capacity_left()` gives how many more entries fit before eviction starts.
- `keys()` lists the keys, least recently used first.
- `close()` empties the cache. A later `put` raises `RuntimeError`.

The cache can also be used as a context manager, which closes it on exit.

### `fastsync.batch`

`split_into_batches(accounts, batch_size)` splits an iterable of addresses
into a list of dicts. Each dict maps an address to `True` and holds at most
`batch_size` addresses. For a mapping, its keys are used.

### `fastsync.log_setup` and `fastsync.log`

`log_setup.setup(log_dir, log_file_name)` builds the process-wide logger
(named `fastsync`) once. It returns `(logger, warnings)`, and later calls
return the same result.

- Output goes to the console.
- Error records go to stderr.
- Output is coloured when the stream is a terminal.

When the `OTEL_EXPORTER_OTLP_ENDPOINT` environment variable is set, setup only
adds a warning. No telemetry is exported and no log file is written.

`log_setup.shutdown(logger)` flushes and detaches the logger's handlers.

`log.get_async_logger()` returns the shared `AsyncLogger` registry.
`log.logger(name)` returns the child logger for a topic, for example
`log.logger(log.DATA_SYNC)`. On the registry:

- `named_logger` creates or returns the topic logger.
- `get_named_logger` returns a registered topic logger, or raises
  `LookupError`.
- `sync` flushes.
- `shutdown` closes the global logger.
- `close(topic)` closes a topic logger.

### `fastsync.blocks`

The module has two forms of each record:

- Wire-form records `ProtoZKBlock` and `ProtoTransaction` carry numbers as
  big-endian bytes.
- Domain records `ZKBlock` and `Transaction` carry:
  - 32-byte hashes;
  - optional 20-byte addresses;
  - integers, or `None` where the wire value was empty.

`proto_to_zkblock` and `zkblock_to_proto` convert between the two forms.
`BlockHeader` is the header record used by reconciliation. The helpers are:

- `bytes_to_hash` and `bytes_to_address` keep the last 32 or 20 bytes and
  left-pad with zeros.
- `bytes_to_int` decodes big-endian bytes and returns `None` for empty input.
- `int_to_bytes` gives minimal big-endian bytes, and `b""` for `None` or 0.

### `fastsync.reconciliation`

`Reconciliation(header_cache=None, max_workers=16)` recomputes balances of
tagged accounts.

Call `configure(protocol_version, node_info, wal)` first. `node_info` is a
`NodeInfo` whose `block_info` provides two methods:

- `new_account_manager()` returns an `AccountManager`, which provides:
  - `get_transactions_for_account`;
  - `get_account_balance`;
  - `batch_update_accounts`.
- `new_block_header_iterator()` returns an object with
  `get_block_headers(block_numbers)`.

`reconcile(tagged_accounts)` works in three steps:

1. It replays each account's `DBTransaction`s across worker threads:
   - The sender pays `gas_limit * price` and the value.
   - The receiver gets the value.
   - The block's coinbase gets half the fee plus any odd wei, and the ZKVM
     address gets the other half.
   - Negative results are clamped to 0.
2. If a `wal` was given, it writes one batch event (a dict) with
   `wal.write_event`, then calls `wal.flush()`.
3. It commits every `AccountUpdate` in one `batch_update_accounts` call, then
   calls `wal.create_checkpoint()`.

It returns the number of accounts committed. If any account fails, or the WAL
write or the commit fails, it raises `ReconciliationError` and commits nothing.
For account failures, the error's `failed_accounts` lists the failed addresses.

Block headers are read through the optional `LRUCache` with
`get_block_header`. Misses are fetched from the block source.

### `fastsync.merkle`

`merkle_snapshot_to_proto` and `proto_to_merkle_snapshot` convert
`MerkleTreeSnapshot` to and from `ProtoMerkleSnapshot`:

- Empty peak slots (`None`) are sent as nodes with an empty root, so slot
  positions survive the round trip.
- On the way back, any node whose root is not 32 bytes becomes `None`.
- A wire snapshot without a config raises `ValueError`.

## Examples

```python
from fastsync.checksum import Checksum, VERSION_SHA256
from fastsync.lru_cache import LRUCache

digest = Checksum().create(b"hello world", VERSION_SHA256)
assert Checksum().verify(b"hello world", VERSION_SHA256, digest)

cache = LRUCache(3)
cache.put(1, "header-1")
assert cache.get(1) == "header-1"
assert cache.get(2) is None
```

```python
import io
from fastsync.pbstream import write_delimited, read_delimited

buf = io.BytesIO()
write_delimited(buf, b"payload")
buf.seek(0)
assert read_delimited(buf) == b"payload"
```

## What this package does not do

The package does not provide:

- any peer-to-peer networking, protocol handlers or block publishing;
- a write-ahead log or a database. Reconciliation works with whatever WAL
  object and account manager you pass in.
- a command-line program.

## Running the tests

```
pip install .[test]
pytest
```