"""Balance reconciliation for tagged accounts after data sync.

Balances are recomputed by replaying each account's transactions, written to
the write-ahead log as one batch, then committed to the database all at once.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol, Sequence

from fastsync import log
from fastsync.batch import split_into_batches
from fastsync.blocks import BlockHeader, bytes_to_address
from fastsync.lru_cache import LRUCache

NAMED_LOGGER = "log:reconciliation"
MAX_ACCOUNT_WORKERS = 16
RECONCILIATION_BATCH_EVENT = "ReconciliationBatch"


def _log() -> logging.Logger:
    return log.logger(NAMED_LOGGER)


class ReconciliationError(Exception):
    """Raised when reconciliation cannot complete; the database is left untouched."""

    def __init__(self, message: str, failed_accounts: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.failed_accounts = list(failed_accounts)


@dataclass
class DBTransaction:
    """A stored transaction as read back for one account."""

    block_number: int = 0
    type: int = 0
    nonce: int = 0
    gas_limit: int = 0
    value: int | None = None
    gas_price: int | None = None
    max_fee: int | None = None
    max_priority_fee: int | None = None
    from_address: bytes | None = None
    to_address: bytes | None = None
    hash: bytes = b""


@dataclass(frozen=True)
class AccountUpdate:
    """A balance and nonce ready to be committed for one account."""

    address: str
    new_balance: int
    nonce: int
    is_new_account: bool = False


@dataclass
class AccountState:
    """State computed for an account by replaying its transactions."""

    address: str
    computed_balance: int = 0
    nonce: int = 0
    gas_spent: int = 0


class AccountManager(Protocol):
    """Database access needed to reconcile accounts."""

    def get_transactions_for_account(self, account_address: str) -> list[DBTransaction]:
        """Return every stored transaction touching the account."""

    def get_account_balance(self, address: str) -> tuple[int | None, int]:
        """Return the stored balance (None if the account is unknown) and nonce."""

    def batch_update_accounts(self, updates: list[AccountUpdate]) -> None:
        """Commit all updates atomically, or none of them."""


class _HeaderSource(Protocol):
    def get_block_headers(self, block_numbers: list[int]) -> list[BlockHeader]:
        ...


class _BlockInfo(Protocol):
    def new_account_manager(self) -> AccountManager:
        ...

    def new_block_header_iterator(self) -> _HeaderSource:
        ...


@dataclass
class NodeInfo:
    """Identity of the local node and its access to stored blocks."""

    peer_id: str = ""
    multiaddrs: list[str] = field(default_factory=list)
    version: int = 0
    block_info: _BlockInfo | None = None


@dataclass
class SyncVars:
    """Configuration shared by the sync stages."""

    version: int = 0
    node_info: NodeInfo = field(default_factory=NodeInfo)
    wal: Any = None


def _address_hex(address: bytes) -> str:
    return "0x" + bytes_to_address(address).hex()


class Reconciliation:
    """Recomputes balances of tagged accounts and commits them atomically.

    The optional ``wal`` must offer ``write_event(event)``, ``flush()`` and
    ``create_checkpoint()``; the event written is a dict describing the batch.
    """

    def __init__(
        self,
        header_cache: LRUCache[int, BlockHeader] | None = None,
        max_workers: int = MAX_ACCOUNT_WORKERS,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.header_cache = header_cache
        self.sync_vars: SyncVars | None = None
        self.max_workers = max_workers

    def configure(self, protocol_version: int, node_info: NodeInfo, wal: Any = None) -> "Reconciliation":
        """Set node info and WAL; must be called before :meth:`reconcile`."""
        if self.sync_vars is None:
            self.sync_vars = SyncVars()
        self.sync_vars.version = protocol_version
        self.sync_vars.node_info = node_info
        self.sync_vars.wal = wal
        return self

    def _require_sync_vars(self) -> SyncVars:
        if self.sync_vars is None:
            raise ReconciliationError("reconciliation is not configured")
        return self.sync_vars

    def get_block_header(self, block_number: int) -> BlockHeader | None:
        """Return the header of ``block_number`` from the cache, or fetch and cache it."""
        cache = self.header_cache
        if cache is None:
            return None
        header = cache.get(block_number)
        if header is not None:
            return header
        if self.sync_vars is None or self.sync_vars.node_info.block_info is None:
            return None
        try:
            headers = self.sync_vars.node_info.block_info.new_block_header_iterator().get_block_headers(
                [block_number]
            )
        except Exception as err:
            _log().error("Failed to fetch block from DB: %s (block_number=%d)", err, block_number)
            return None
        if not headers:
            return None
        header = headers[0]
        cache.put(block_number, header)
        return header

    def _compute_batch(
        self, manager: AccountManager, accounts: Iterable[str]
    ) -> list[tuple[str, AccountUpdate | None, Exception | None]]:
        results: list[tuple[str, AccountUpdate | None, Exception | None]] = []
        for address in accounts:
            try:
                results.append((address, self.compute_account_update(manager, address), None))
            except Exception as err:
                results.append((address, None, err))
        return results

    def reconcile(self, tagged_accounts: Iterable[str] | None) -> int:
        """Recompute and commit balances for ``tagged_accounts``; return how many were committed.

        Raises :class:`ReconciliationError` (with ``failed_accounts`` set when
        computation failed) without touching the database.
        """
        sync_vars = self._require_sync_vars()
        accounts = list(dict.fromkeys(tagged_accounts or ()))
        if not accounts:
            _log().info("No tagged accounts to reconcile")
            return 0
        block_info = sync_vars.node_info.block_info
        if block_info is None:
            raise ReconciliationError("node info has no block source")

        total = len(accounts)
        _log().debug("Starting reconciliation (tagged_accounts_count=%d)", total)

        workers = min(total, self.max_workers)
        batch_size = -(-total // workers)
        batches = split_into_batches(accounts, batch_size)
        manager = block_info.new_account_manager()

        updates: list[AccountUpdate] = []
        failed: list[str] = []
        errors: list[Exception] = []
        log_interval = max(total // 10, 1)
        collected = 0

        with ThreadPoolExecutor(max_workers=len(batches)) as pool:
            futures = [pool.submit(self._compute_batch, manager, batch) for batch in batches]
            for future in as_completed(futures):
                for address, update, err in future.result():
                    if err is not None:
                        failed.append(address)
                        errors.append(err)
                    else:
                        updates.append(update)
                    collected += 1
                    if collected % log_interval == 0:
                        _log().debug(
                            "Phase 1 progress (collected=%d, total=%d, failed_so_far=%d)",
                            collected,
                            total,
                            len(errors),
                        )

        if errors:
            _log().warning(
                "Some accounts failed during computation phase; aborting commit "
                "(failed_count=%d, succeeded_count=%d)",
                len(errors),
                len(updates),
            )
            raise ReconciliationError(
                f"computation phase failed for {len(errors)} accounts, "
                f"no DB changes were made: {[str(e) for e in errors]}",
                failed,
            )
        _log().info("Phase 1 complete (accounts_ready=%d)", len(updates))

        wal = sync_vars.wal
        if wal is not None:
            wal_start = time.monotonic()
            event = {
                "type": RECONCILIATION_BATCH_EVENT,
                "accounts": [
                    {
                        "account_address": u.address,
                        "new_balance": str(u.new_balance),
                        "nonce": u.nonce,
                    }
                    for u in updates
                ],
                "timestamp": int(time.time()),
            }
            try:
                wal.write_event(event)
            except Exception as err:
                raise ReconciliationError(f"WAL batch write failed, aborting commit: {err}") from err
            try:
                wal.flush()
            except Exception as err:
                raise ReconciliationError(f"WAL flush failed, aborting commit: {err}") from err
            _log().info(
                "Phase 2 complete (accounts_in_batch=%d, duration=%.3fs)",
                len(updates),
                time.monotonic() - wal_start,
            )

        db_start = time.monotonic()
        try:
            manager.batch_update_accounts(updates)
        except Exception as err:
            raise ReconciliationError(
                f"atomic DB commit failed, no accounts were updated: {err}"
            ) from err
        _log().info(
            "Phase 3 complete (accounts_committed=%d, duration=%.3fs)",
            len(updates),
            time.monotonic() - db_start,
        )

        if wal is not None:
            try:
                wal.create_checkpoint()
            except Exception as err:
                _log().warning("WAL checkpoint failed after reconciliation commit: %s", err)

        return len(updates)

    def compute_account_update(self, account_manager: AccountManager, account_address: str) -> AccountUpdate:
        """Replay the account's transactions and return the update to commit."""
        if not account_address.startswith("0x"):
            account_address = "0x" + account_address
        try:
            transactions = account_manager.get_transactions_for_account(account_address)
        except Exception as err:
            raise ReconciliationError(
                f"failed to get transactions for account {account_address}: {err}"
            ) from err

        state = self.calculate_account_state(account_address, transactions)

        try:
            current_balance, _ = account_manager.get_account_balance(account_address)
        except Exception as err:
            raise ReconciliationError(
                f"failed to get current balance for account {account_address}: {err}"
            ) from err

        return AccountUpdate(
            address=account_address,
            new_balance=max(state.computed_balance, 0),
            nonce=state.nonce,
            is_new_account=current_balance is None,
        )

    def calculate_account_state(
        self, account_address: str, transactions: Iterable[DBTransaction]
    ) -> AccountState:
        """Replay ``transactions`` to find the absolute balance and highest outgoing nonce.

        The sender pays the gas fee and the value; the receiver gets the value;
        the block's coinbase gets half the fee plus any odd wei, the ZKVM the other half.
        """
        account = account_address.lower()
        state = AccountState(address=account_address)

        for tx in transactions:
            from_addr = _address_hex(tx.from_address) if tx.from_address is not None else ""
            to_addr = _address_hex(tx.to_address) if tx.to_address is not None else ""
            outgoing = from_addr == account
            incoming = to_addr == account

            fee = self.calculate_gas_cost(tx)
            half, remainder = divmod(fee, 2)
            coinbase_fee = half + remainder
            zkvm_fee = half

            coinbase_addr = zkvm_addr = ""
            header = self.get_block_header(tx.block_number)
            if header is not None:
                if header.coinbase_addr:
                    coinbase_addr = _address_hex(header.coinbase_addr)
                if header.zkvm_addr:
                    zkvm_addr = _address_hex(header.zkvm_addr)

            if outgoing:
                state.nonce = max(state.nonce, tx.nonce)
                state.gas_spent += fee
                state.computed_balance -= fee

            if tx.value is not None and tx.value > 0:
                if outgoing:
                    state.computed_balance -= tx.value
                if incoming:
                    state.computed_balance += tx.value

            if coinbase_addr and account == coinbase_addr:
                state.computed_balance += coinbase_fee
            if zkvm_addr and account == zkvm_addr:
                state.computed_balance += zkvm_fee

        return state

    def calculate_gas_cost(self, tx: DBTransaction) -> int:
        """Return ``gas_limit * price`` as an upper bound of the fee paid.

        Legacy transactions use the gas price; typed ones the max fee, falling
        back to the max priority fee. Unknown types and missing prices cost 0.
        """
        if tx.gas_limit == 0:
            return 0
        if tx.type == 0:
            price = tx.gas_price
        elif tx.type in (1, 2):
            price = tx.max_fee if tx.max_fee is not None else tx.max_priority_fee
        else:
            return 0
        if price is None:
            return 0
        return tx.gas_limit * price

    def close(self) -> None:
        """Close the header cache and drop the configuration."""
        if self.header_cache is not None:
            try:
                self.header_cache.close()
            except Exception as err:
                _log().error("Failed to close header cache: %s", err)
            self.header_cache = None
        self.sync_vars = None