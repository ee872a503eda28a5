from __future__ import annotations

from typing import Callable, Generic, Iterator, TypeVar

T = TypeVar("T")


class LazyView(Generic[T]):
    """Finite, restartable read view.

    Every iteration asks the source again, so a view reflects the state at
    the time it is iterated, not the time it was created.
    """

    def __init__(self, source: Callable[[], Iterator[T]]):
        self._source = source

    def __iter__(self) -> Iterator[T]:
        return iter(self._source())

    def first(self) -> T | None:
        return next(iter(self), None)

    def to_list(self) -> list[T]:
        return list(self)
