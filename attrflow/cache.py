"""
attrflow Instance Cache
=======================

Per-instance storage of the last known value of every stored and computed
attribute. A cache is created the first time an instance's attributes are
touched and lives exactly as long as the instance; it is never shared.

"Has been written" is tracked separately from the value, so ``None`` is a
legal stored value and unset attributes still read as ``None``.
"""

import threading
from contextlib import nullcontext
from copy import deepcopy
from typing import Any, Dict, Iterator, Optional, Tuple

# Sentinel for "never written"
MISSING = object()

CACHE_ATTR = "_attrflow_cache"


class InstanceCache:
    """
    Mapping from attribute name to its last known value.

    When ``thread_safe`` is set, :attr:`lock` is a re-entrant lock that
    writers hold across the whole read-compare-set-propagate sequence.
    Otherwise it is a no-op context manager.
    """

    __slots__ = ("_values", "lock")

    def __init__(self, thread_safe: bool = False):
        self._values: Dict[str, Any] = {}
        self.lock = threading.RLock() if thread_safe else nullcontext()

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def lookup(self, name: str) -> Any:
        """Return the cached value, or :data:`MISSING` if never written."""
        return self._values.get(name, MISSING)

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def discard(self, name: str) -> None:
        self._values.pop(name, None)

    def restore(self, previous: Dict[str, Any]) -> None:
        """Put back values captured with :meth:`lookup`; MISSING unsets."""
        for name, value in previous.items():
            if value is MISSING:
                self.discard(name)
            else:
                self.set(name, value)

    def copy(self, thread_safe: bool = False, memo: Optional[dict] = None):
        """
        Return a new cache with the same values and its own lock.

        Values are deep-copied when ``memo`` is given (from ``__deepcopy__``).
        """
        clone = InstanceCache(thread_safe=thread_safe)
        for name, value in self._values.items():
            clone._values[name] = value if memo is None else deepcopy(value, memo)
        return clone

    def is_set(self, name: str) -> bool:
        return name in self._values

    def items(self) -> Iterator[Tuple[str, Any]]:
        return iter(list(self._values.items()))

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"InstanceCache({self._values!r})"


def cache_for(instance: Any) -> InstanceCache:
    """Return the instance's cache, creating it on first access."""
    try:
        return instance.__dict__[CACHE_ATTR]
    except KeyError:
        options = type(instance).__options__
        # setdefault keeps a single cache if two threads race on creation
        return instance.__dict__.setdefault(
            CACHE_ATTR, InstanceCache(thread_safe=options.thread_safe)
        )
