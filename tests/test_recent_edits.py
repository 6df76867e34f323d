"""Tests for the recently edited files cache."""

import threading

import pytest

from context_retrieval.recent_edits import RecentEditCache


class TestRecentEditCache:
    """Tests for RecentEditCache."""

    def test_most_recent_first(self) -> None:
        cache = RecentEditCache(capacity=5)
        cache.record("a.py")
        cache.record("b.py")
        cache.record("c.py")

        assert cache.keys() == ["c.py", "b.py", "a.py"]

    def test_re_recording_moves_to_front(self) -> None:
        cache = RecentEditCache(capacity=5)
        cache.record("a.py")
        cache.record("b.py")
        cache.record("a.py")

        assert cache.keys() == ["a.py", "b.py"]
        assert len(cache) == 2

    def test_capacity_evicts_least_recent(self) -> None:
        cache = RecentEditCache(capacity=2)
        cache.record("a.py")
        cache.record("b.py")
        cache.record("c.py")

        assert cache.keys() == ["c.py", "b.py"]
        assert "a.py" not in cache

    def test_keys_limit(self) -> None:
        cache = RecentEditCache(capacity=5)
        for name in ("a.py", "b.py", "c.py"):
            cache.record(name)

        assert cache.keys(limit=2) == ["c.py", "b.py"]
        assert cache.keys(limit=10) == ["c.py", "b.py", "a.py"]

    def test_keys_is_a_snapshot(self) -> None:
        cache = RecentEditCache(capacity=5)
        cache.record("a.py")
        snapshot = cache.keys()
        snapshot.append("b.py")

        assert cache.keys() == ["a.py"]

    def test_discard_and_clear(self) -> None:
        cache = RecentEditCache(capacity=5)
        cache.record("a.py")
        cache.record("b.py")

        cache.discard("a.py")
        cache.discard("missing.py")
        assert cache.keys() == ["b.py"]

        cache.clear()
        assert len(cache) == 0

    def test_last_edited(self) -> None:
        cache = RecentEditCache(capacity=5)
        cache.record("a.py", edited_at=42.0)

        assert cache.last_edited("a.py") == 42.0
        assert cache.last_edited("b.py") is None

    def test_invalid_capacity(self) -> None:
        with pytest.raises(ValueError, match="capacity"):
            RecentEditCache(capacity=0)

    def test_concurrent_writes_and_reads(self) -> None:
        cache = RecentEditCache(capacity=50)
        errors: list[BaseException] = []

        def writer(prefix: str) -> None:
            for i in range(500):
                cache.record(f"{prefix}{i % 80}.py")

        def reader() -> None:
            try:
                for _ in range(500):
                    keys = cache.keys(limit=10)
                    assert len(keys) <= 10
            except BaseException as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(p,)) for p in ("a", "b")]
        threads += [threading.Thread(target=reader) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert not errors
        assert len(cache) == 50
