"""Tests for InMemoryBlobStore."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

import qrshare.blobs._memory as memory_module
from qrshare.blobs import BlobStore, InMemoryBlobStore
from qrshare.errors import BlobExpiredError, BlobNotFoundError, PayloadTooLargeError


class _Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> _Clock:
    fake = _Clock(datetime(2026, 1, 1, tzinfo=timezone.utc))
    monkeypatch.setattr(memory_module, "utc_now", fake)
    return fake


def test_put_and_get() -> None:
    store = InMemoryBlobStore()
    entry = store.put_blob(b"hello world", display_name="a.txt", media_type="text/plain")
    record = store.get_blob(entry.id)
    assert record.payload == b"hello world"
    assert record.entry == entry


def test_put_returns_correct_metadata(clock: _Clock) -> None:
    store = InMemoryBlobStore()
    entry = store.put_blob(b"\x89PNG", display_name="pic.png", media_type="image/png", ttl=60)
    assert entry.display_name == "pic.png"
    assert entry.media_type == "image/png"
    assert entry.size == 4
    assert entry.created_at == clock.now
    assert entry.expires_at == clock.now + timedelta(seconds=60)


def test_put_uses_default_ttl(clock: _Clock) -> None:
    store = InMemoryBlobStore(default_ttl=timedelta(hours=2))
    entry = store.put_blob(b"data", display_name="d.bin")
    assert entry.expires_at - entry.created_at == timedelta(hours=2)


def test_default_ttl_is_one_day() -> None:
    assert InMemoryBlobStore().default_ttl == timedelta(hours=24)


def test_unknown_media_type_falls_back_to_octet_stream() -> None:
    store = InMemoryBlobStore()
    assert store.put_blob(b"x", display_name="x").media_type == "application/octet-stream"
    assert store.put_blob(b"x", display_name="x", media_type="").media_type == "application/octet-stream"


def test_get_missing_blob_raises() -> None:
    store = InMemoryBlobStore()
    with pytest.raises(BlobNotFoundError) as exc_info:
        store.get_blob("nonexistent")
    assert exc_info.value.blob_id == "nonexistent"
    assert not isinstance(exc_info.value, BlobExpiredError)


def test_get_after_expiry_raises_without_sweep(clock: _Clock) -> None:
    store = InMemoryBlobStore()
    entry = store.put_blob(b"hello", display_name="a.txt", ttl=10)
    clock.advance(seconds=11)

    with pytest.raises(BlobExpiredError) as exc_info:
        store.get_blob(entry.id)
    assert exc_info.value.expires_at == entry.expires_at
    assert isinstance(exc_info.value, BlobNotFoundError)


def test_expired_get_evicts_record(clock: _Clock) -> None:
    store = InMemoryBlobStore()
    entry = store.put_blob(b"hello", display_name="a.txt", ttl=10)
    clock.advance(seconds=10)
    assert store.stats().count == 1

    with pytest.raises(BlobExpiredError):
        store.get_blob(entry.id)
    assert store.stats().count == 0

    with pytest.raises(BlobNotFoundError) as exc_info:
        store.get_blob(entry.id)
    assert not isinstance(exc_info.value, BlobExpiredError)


def test_expiry_boundary_is_exclusive(clock: _Clock) -> None:
    store = InMemoryBlobStore()
    entry = store.put_blob(b"edge", display_name="e.txt", ttl=5)

    clock.now = entry.expires_at - timedelta(microseconds=1)
    assert store.get_blob(entry.id).payload == b"edge"

    clock.now = entry.expires_at
    with pytest.raises(BlobExpiredError):
        store.get_blob(entry.id)


def test_stat_blob_returns_entry_and_applies_expiry(clock: _Clock) -> None:
    store = InMemoryBlobStore()
    entry = store.put_blob(b"hello", display_name="a.txt", ttl=10)
    assert store.stat_blob(entry.id) == entry

    clock.advance(seconds=10)
    with pytest.raises(BlobExpiredError):
        store.stat_blob(entry.id)
    assert store.stats().count == 0


def test_has_blob_respects_expiry_without_evicting(clock: _Clock) -> None:
    store = InMemoryBlobStore()
    entry = store.put_blob(b"data", display_name="d", ttl=1)
    assert store.has_blob(entry.id) is True
    assert store.has_blob("missing") is False

    clock.advance(seconds=1)
    assert store.has_blob(entry.id) is False
    assert store.stats().count == 1


def test_delete_existing_blob_returns_true_and_removes_data() -> None:
    store = InMemoryBlobStore()
    entry = store.put_blob(b"hello", display_name="a.txt")

    assert store.delete_blob(entry.id) is True
    assert store.has_blob(entry.id) is False
    with pytest.raises(BlobNotFoundError):
        store.get_blob(entry.id)


def test_delete_is_idempotent() -> None:
    store = InMemoryBlobStore()
    entry = store.put_blob(b"hello", display_name="a.txt")
    assert store.delete_blob(entry.id) is True
    assert store.delete_blob(entry.id) is False
    assert store.delete_blob("missing") is False


def test_identical_payloads_get_distinct_ids() -> None:
    store = InMemoryBlobStore()
    first = store.put_blob(b"same", display_name="a.txt")
    second = store.put_blob(b"same", display_name="a.txt")
    assert first.id != second.id

    assert store.delete_blob(first.id) is True
    assert store.get_blob(second.id).payload == b"same"


def test_payload_size_limit_is_inclusive() -> None:
    store = InMemoryBlobStore(max_size_bytes=8)
    entry = store.put_blob(b"x" * 8, display_name="ok.bin")
    assert store.get_blob(entry.id).size == 8

    with pytest.raises(PayloadTooLargeError) as exc_info:
        store.put_blob(b"x" * 9, display_name="big.bin")
    assert exc_info.value.size == 9
    assert exc_info.value.limit == 8
    assert store.stats().count == 1


def test_default_size_limit_is_100_mib() -> None:
    assert InMemoryBlobStore().max_size_bytes == 100 * 1024 * 1024


def test_unbounded_store_accepts_any_size() -> None:
    store = InMemoryBlobStore(max_size_bytes=None)
    entry = store.put_blob(b"x" * 1024, display_name="big.bin")
    assert entry.size == 1024


def test_rejects_negative_size_limit() -> None:
    with pytest.raises(ValueError, match="max_size_bytes must be >= 0"):
        InMemoryBlobStore(max_size_bytes=-1)


@pytest.mark.parametrize("ttl", [0, -5, timedelta(0)])
def test_rejects_non_positive_ttl(ttl: object) -> None:
    store = InMemoryBlobStore()
    with pytest.raises(ValueError, match="ttl must be positive"):
        store.put_blob(b"data", display_name="d", ttl=ttl)  # type: ignore[arg-type]
    assert store.stats().count == 0


def test_sweep_removes_exactly_expired_records(clock: _Clock) -> None:
    store = InMemoryBlobStore()
    short = store.put_blob(b"short", display_name="s", ttl=5)
    boundary = store.put_blob(b"boundary", display_name="b", ttl=10)
    long = store.put_blob(b"long", display_name="l", ttl=60)
    clock.advance(seconds=10)

    assert store.sweep_expired() == 2
    assert store.has_blob(long.id) is True
    for entry in (short, boundary):
        with pytest.raises(BlobNotFoundError) as exc_info:
            store.get_blob(entry.id)
        assert not isinstance(exc_info.value, BlobExpiredError)
    assert store.stats().count == 1


def test_sweep_with_nothing_expired_returns_zero() -> None:
    store = InMemoryBlobStore()
    entry = store.put_blob(b"data", display_name="d")
    assert store.sweep_expired() == 0
    assert store.get_blob(entry.id).payload == b"data"
    assert InMemoryBlobStore().sweep_expired() == 0


def test_stats_counts_bytes() -> None:
    store = InMemoryBlobStore()
    store.put_blob(b"1234", display_name="a")
    store.put_blob(b"56", display_name="b")
    stats = store.stats()
    assert stats.count == 2
    assert stats.total_bytes == 6


def test_list_returns_live_entries_sorted_and_filterable(clock: _Clock) -> None:
    store = InMemoryBlobStore()
    text = store.put_blob(b"text", display_name="a.txt", media_type="text/plain", ttl=100)
    clock.advance(seconds=1)
    image = store.put_blob(b"img", display_name="b.png", media_type="image/png", ttl=100)
    clock.advance(seconds=1)
    store.put_blob(b"gone", display_name="c.txt", media_type="text/plain", ttl=1)
    clock.advance(seconds=1)

    assert [entry.id for entry in store.list_blobs()] == [text.id, image.id]
    assert [entry.id for entry in store.list_blobs(media_type="image/png")] == [image.id]
    assert [entry.id for entry in store.list_blobs(media_type="text/plain")] == [text.id]


def test_scenario_short_ttl_then_default(clock: _Clock) -> None:
    store = InMemoryBlobStore()
    first = store.put_blob(b"hello", display_name="a.txt", media_type="text/plain", ttl=timedelta(seconds=1))
    clock.advance(seconds=1.5)
    with pytest.raises(BlobNotFoundError):
        store.get_blob(first.id)

    second = store.put_blob(b"hello", display_name="a.txt", media_type="text/plain", ttl=timedelta(hours=24))
    record = store.get_blob(second.id)
    assert record.payload == b"hello"
    assert record.size == 5
    assert record.media_type == "text/plain"


def test_satisfies_protocol() -> None:
    assert isinstance(InMemoryBlobStore(), BlobStore)


def test_concurrent_puts_are_all_retrievable() -> None:
    store = InMemoryBlobStore()
    ids: list[str] = []
    ids_lock = threading.Lock()

    def worker(worker_id: int) -> None:
        for index in range(50):
            entry = store.put_blob(f"{worker_id}-{index}".encode(), display_name="f")
            with ids_lock:
                ids.append(entry.id)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(set(ids)) == 400
    assert store.stats().count == 400
    assert all(store.has_blob(blob_id) for blob_id in ids)


@pytest.mark.parametrize("data", [5, "text", None, [1, 2]])
def test_put_rejects_non_bytes_payload(data: object) -> None:
    store = InMemoryBlobStore()
    with pytest.raises(TypeError, match="data must be bytes-like"):
        store.put_blob(data, display_name="x")  # type: ignore[arg-type]
    assert store.stats().count == 0


def test_put_accepts_bytearray_and_copies_it() -> None:
    store = InMemoryBlobStore()
    buffer = bytearray(b"abc")
    entry = store.put_blob(buffer, display_name="a")  # type: ignore[arg-type]
    buffer[:] = b"xyz"
    assert store.get_blob(entry.id).payload == b"abc"


def test_get_racing_delete_and_sweep_returns_whole_records_or_not_found(clock: _Clock) -> None:
    store = InMemoryBlobStore()
    expected = {
        store.put_blob(bytes([index]) * 4096, display_name=f"{index}.bin", ttl=index + 1).id: bytes([index]) * 4096
        for index in range(60)
    }
    ids = list(expected)
    failures: list[str] = []
    start = threading.Barrier(4)

    def reader() -> None:
        start.wait()
        for _ in range(20):
            for blob_id in ids:
                try:
                    record = store.get_blob(blob_id)
                except BlobNotFoundError:
                    continue
                except Exception as exc:
                    failures.append(f"{blob_id}: {exc!r}")
                    continue
                if record.payload != expected[blob_id] or record.size != len(expected[blob_id]):
                    failures.append(blob_id)

    def deleter() -> None:
        start.wait()
        for blob_id in ids[::2]:
            store.delete_blob(blob_id)

    def sweeper() -> None:
        start.wait()
        for _ in range(60):
            clock.advance(seconds=1)
            store.sweep_expired()

    threads = [threading.Thread(target=target) for target in (reader, reader, deleter, sweeper)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert failures == []
    assert store.stats().count == 0
