import threading
from collections import Counter

import pytest

from datafact.config import ConfigError
from datafact.models.keys import KeyPool


class TestKeyPool:

    def test_round_robin_order(self):
        pool = KeyPool(["a", "b", "c"])
        assert [pool.next() for _ in range(7)] == ["a", "b", "c", "a", "b", "c", "a"]

    def test_from_delimited_trims_and_drops_empty(self):
        pool = KeyPool.from_delimited(" key-1 ;;key-2;  ; key-3 ")
        assert len(pool) == 3
        assert [pool.next() for _ in range(3)] == ["key-1", "key-2", "key-3"]

    def test_single_key_always_returned(self):
        pool = KeyPool.from_delimited("only")
        assert {pool.next() for _ in range(5)} == {"only"}

    @pytest.mark.parametrize("raw", ["", " ; ;", ";;;", None])
    def test_no_valid_keys_is_config_error(self, raw):
        with pytest.raises(ConfigError):
            KeyPool.from_delimited(raw)

    def test_concurrent_usage_is_balanced(self):
        """
        Test: Many threads drawing keys at once
        How: 8 threads x 300 draws on a pool of 3
        Ensures: No key is skipped or double-dispensed, so usage is exactly even
        """
        pool = KeyPool(["k1", "k2", "k3"])
        drawn = []
        drawn_lock = threading.Lock()
        start = threading.Barrier(8)

        def worker():
            start.wait()
            local = [pool.next() for _ in range(300)]
            with drawn_lock:
                drawn.extend(local)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        counts = Counter(drawn)
        assert sum(counts.values()) == 2400
        assert counts == {"k1": 800, "k2": 800, "k3": 800}

    def test_uneven_draw_count_within_one(self):
        pool = KeyPool(["a", "b", "c", "d"])
        counts = Counter(pool.next() for _ in range(10))
        assert max(counts.values()) - min(counts.values()) <= 1
