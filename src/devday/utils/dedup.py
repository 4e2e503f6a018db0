"""Collapse streamed chunks of one logical message into a single record."""

from typing import Callable, Hashable, Iterable, TypeVar

T = TypeVar("T")


def dedupe_last(items: Iterable[T], key: Callable[[T], Hashable | None]) -> list[T]:
    """Keep the last item per key, at the position where the key first appeared.

    Later streaming chunks are more complete than earlier ones. Items whose
    key is None have no stable identity and are all kept.
    """
    by_key: dict = {}
    for index, item in enumerate(items):
        k = key(item)
        if k is None:
            by_key[("__anon__", index)] = item
        else:
            by_key[k] = item
    return list(by_key.values())


def unique(items: Iterable[T]) -> list[T]:
    """Order-preserving de-duplication (first appearance wins)."""
    return list(dict.fromkeys(items))
