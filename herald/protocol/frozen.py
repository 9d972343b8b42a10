"""
Read-only JSON trees.

Event payloads and extension values are copied into these containers at
construction time, so neither the caller's original objects nor the event's
own values can be changed afterwards. They subclass dict and list, so they
compare equal to plain JSON values and serialize with the json module.
"""

from collections.abc import Mapping
from typing import Any


def _read_only(self, *args: Any, **kwargs: Any) -> None:
    raise TypeError(f"{type(self).__name__} is read-only")


class FrozenDict(dict):
    """A dict whose contents cannot change after creation."""

    __setitem__ = __delitem__ = __ior__ = _read_only
    clear = pop = popitem = setdefault = update = _read_only

    def __reduce__(self):
        return type(self), (dict(self),)

    def __repr__(self) -> str:
        return f"FrozenDict({dict.__repr__(self)})"


class FrozenList(list):
    """A list whose contents cannot change after creation."""

    __setitem__ = __delitem__ = __iadd__ = __imul__ = _read_only
    append = extend = insert = pop = remove = clear = sort = reverse = _read_only

    def __reduce__(self):
        return type(self), (list(self),)

    def __repr__(self) -> str:
        return f"FrozenList({list.__repr__(self)})"


def freeze(value: Any) -> Any:
    """Deep-copy a JSON-like value into read-only containers."""
    if isinstance(value, Mapping):
        return FrozenDict((key, freeze(item)) for key, item in value.items())
    if isinstance(value, list | tuple):
        return FrozenList(freeze(item) for item in value)
    if isinstance(value, bytearray):
        return bytes(value)
    return value


def json_equal(left: Any, right: Any) -> bool:
    """
    Structural equality of JSON trees. Unlike ==, booleans never equal
    numbers (True vs 1) at any depth.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(json_equal(left[k], right[k]) for k in left)
    if isinstance(left, list | tuple) and isinstance(right, list | tuple):
        return len(left) == len(right) and all(json_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, Mapping | list | tuple) or isinstance(right, Mapping | list | tuple):
        return False
    return left == right
