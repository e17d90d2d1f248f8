"""Tests for identifier and token generation."""

import threading
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from pastebin_core.exceptions import EntropyUnavailable
from pastebin_core.utils.id_utils import TOKEN_ALPHABET, IdGenerator, created_at, next_token


class StepClock:
    """Millisecond clock returning a scripted sequence, then repeating the last value."""

    def __init__(self, *values):
        self.values = list(values)

    def __call__(self):
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


class TestIdGenerator:
    def test_ids_increase(self):
        generator = IdGenerator(node_id=3)
        ids = [generator.next_id() for _ in range(1000)]

        assert ids == sorted(ids)
        assert len(set(ids)) == 1000

    def test_creation_time_recoverable(self):
        instant = datetime(2026, 3, 1, 8, 30, 15, 250000, tzinfo=timezone.utc)
        ms = int(instant.timestamp() * 1000)
        generator = IdGenerator(node_id=0, clock_ms=lambda: ms)

        assert created_at(generator.next_id()) == instant

    def test_node_and_sequence_bits(self):
        generator = IdGenerator(node_id=5, clock_ms=lambda: 1000)

        first = generator.next_id()
        second = generator.next_id()

        assert first >> 22 == 1000
        assert (first >> 12) & 0x3FF == 5
        assert first & 0xFFF == 0
        assert second & 0xFFF == 1

    def test_clock_going_backwards_does_not_repeat(self):
        generator = IdGenerator(node_id=1, clock_ms=StepClock(5000, 4000, 4000))

        first = generator.next_id()
        second = generator.next_id()
        third = generator.next_id()

        assert first < second < third
        assert second >> 22 == 5000

    def test_sequence_exhaustion_borrows_next_millisecond(self):
        generator = IdGenerator(node_id=1, clock_ms=lambda: 7000)
        ids = [generator.next_id() for _ in range(4097)]

        assert len(set(ids)) == 4097
        assert ids == sorted(ids)
        assert ids[-1] >> 22 == 7001

    def test_concurrent_callers_get_distinct_ids(self):
        generator = IdGenerator(node_id=2)
        results = []
        lock = threading.Lock()

        def worker():
            batch = [generator.next_id() for _ in range(500)]
            with lock:
                results.extend(batch)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 4000
        assert len(set(results)) == 4000

    def test_node_id_is_masked(self):
        assert IdGenerator(node_id=1024 + 9).node_id == 9


class TestNextToken:
    def test_length_and_alphabet(self):
        token = next_token()

        assert len(token) == 25
        assert set(token) <= set(TOKEN_ALPHABET)

    def test_ambiguous_characters_excluded(self):
        for character in "0O1lI":
            assert character not in TOKEN_ALPHABET

    def test_tokens_differ(self):
        assert len({next_token() for _ in range(100)}) == 100

    def test_entropy_failure(self):
        with patch("pastebin_core.utils.id_utils.secrets.choice", side_effect=OSError("no entropy")):
            with pytest.raises(EntropyUnavailable):
                next_token()

    def test_generator_seed_failure(self):
        with patch("pastebin_core.utils.id_utils.secrets.randbits", side_effect=NotImplementedError):
            with pytest.raises(EntropyUnavailable):
                IdGenerator()
