"""
Identifier and token generation.

Paste and document ids are 64-bit, time-ordered integers laid out as::

    | 41 bits: milliseconds since the Unix epoch | 10 bits: node | 12 bits: sequence |

which keeps ``id >> 22`` equal to the creation millisecond. Ids stay positive
in a signed BIGINT column until the millisecond counter overflows 41 bits.
"""

import secrets
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from ..constants import Limits
from ..exceptions import EntropyUnavailable

# No 0/O/o or 1/l/I so tokens survive being read aloud or retyped
TOKEN_ALPHABET = "23456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz"

_NODE_MASK = (1 << Limits.ID_NODE_BITS) - 1
_SEQUENCE_MASK = (1 << Limits.ID_SEQUENCE_BITS) - 1
_TIMESTAMP_MASK = (1 << (63 - Limits.ID_TIMESTAMP_SHIFT)) - 1


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class IdGenerator:
    """
    Process-wide generator of unique, monotonically increasing 64-bit ids.

    A single instance is shared by every caller in the process. The lock makes
    the (timestamp, sequence) pair unique; if the wall clock steps backwards the
    generator keeps issuing ids from its last timestamp instead of repeating.
    """

    def __init__(self, node_id: Optional[int] = None, clock_ms: Callable[[], int] = _wall_clock_ms):
        if node_id is None:
            node_id = _random_bits(Limits.ID_NODE_BITS)
        self.node_id = node_id & _NODE_MASK
        self._clock_ms = clock_ms
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def next_id(self) -> int:
        with self._lock:
            now_ms = max(self._clock_ms(), self._last_ms)
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & _SEQUENCE_MASK
                if self._sequence == 0:
                    # Sequence exhausted for this millisecond, borrow the next one
                    now_ms += 1
            else:
                self._sequence = 0
            self._last_ms = now_ms

            return (
                ((now_ms & _TIMESTAMP_MASK) << Limits.ID_TIMESTAMP_SHIFT)
                | (self.node_id << Limits.ID_SEQUENCE_BITS)
                | self._sequence
            )


def created_at(identifier: int) -> datetime:
    """Recover the creation instant encoded in an id."""
    return datetime.fromtimestamp(
        (identifier >> Limits.ID_TIMESTAMP_SHIFT) / 1000, tz=timezone.utc
    )


def next_token(length: int = Limits.TOKEN_LENGTH) -> str:
    """
    Generate an opaque bearer token.

    Raises:
        EntropyUnavailable: If the operating system cannot supply randomness
    """
    try:
        return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))
    except (OSError, NotImplementedError) as e:
        raise EntropyUnavailable("Failed to generate paste token", cause=e, length=length) from e


def _random_bits(bits: int) -> int:
    try:
        return secrets.randbits(bits)
    except (OSError, NotImplementedError) as e:
        raise EntropyUnavailable("Failed to seed identifier generator", cause=e) from e
