"""
Round-robin rotation cursor over a fixed pool of API keys.
"""
import threading
import logging

logger = logging.getLogger(__name__)


class KeyRotator:
    """
    Owns an immutable key pool and the cursor that picks each request's first key.

    - `advance()` reads the cursor and moves it one step, under a lock
    - `attempt_order(start)` is the pool rotated left by `start`
    - Never logs key values, only indices
    """

    def __init__(self, keys: list[str], name: str = ""):
        if not keys:
            raise ValueError(f"{name or 'KeyRotator'}: at least one API key is required")
        self._keys = tuple(keys)
        self._index = 0
        self._lock = threading.Lock()
        self._name = name or "KeyRotator"
        logger.info(f"{self._name}: initialized with {len(self._keys)} key(s)")

    @property
    def position(self) -> int:
        """Offset the next accepted request will start from."""
        with self._lock:
            return self._index

    @property
    def key_count(self) -> int:
        return len(self._keys)

    @property
    def keys(self) -> tuple[str, ...]:
        return self._keys

    def advance(self) -> int:
        """Return the current offset and move the cursor to the next one (wraps around)."""
        with self._lock:
            start = self._index
            self._index = (self._index + 1) % len(self._keys)
            following = self._index
        logger.info(f"{self._name}: request starts at key {start}, next at {following}")
        return start

    def attempt_order(self, start: int) -> list[tuple[int, str]]:
        """(index, key) pairs: pool[start], ..., pool[-1], pool[0], ..., pool[start - 1]."""
        count = len(self._keys)
        return [((start + i) % count, self._keys[(start + i) % count]) for i in range(count)]
