# query.py
"""
Lazy occurrence sequences + range/direction/limit queries

Every query walks the same ascending sequence, so:
  - after(d) is the first element of all() greater than d
  - before(d) is the last element of all() smaller than d
Generation stops as soon as a query is answered.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, tzinfo as TzInfo
from typing import Any, Callable, Iterator, List, Optional

Stop = Callable[[datetime, int], bool]


class Occurrences:
    """Restartable, possibly infinite, lazy sequence of occurrences.

    `stop(when, index)` is called with each produced occurrence and its
    0-based index; a false result drops that occurrence and ends iteration.
    """

    def __init__(self, factory: Callable[[], Iterator[datetime]], stop: Optional[Stop] = None) -> None:
        self._factory = factory
        self._stop = stop

    def __iter__(self) -> Iterator[datetime]:
        stop = self._stop
        for index, when in enumerate(self._factory()):
            if stop is not None and not stop(when, index):
                return
            yield when

    def with_stop(self, stop: Optional[Stop]) -> "Occurrences":
        if stop is None:
            return self
        if self._stop is None:
            return Occurrences(self._factory, stop)
        inner = self._stop
        return Occurrences(self._factory, lambda when, i: inner(when, i) and stop(when, i))

    def take(self, limit: int) -> "Occurrences":
        return self.with_stop(lambda when, i: i < limit)

    def first(self) -> Optional[datetime]:
        return next(iter(self), None)


def align(when: datetime, tz: Optional[TzInfo]) -> datetime:
    """Give `when` the same awareness as the sequence it is compared with.

    Naive values take the sequence's zone; aware values compared with a
    floating sequence keep their wall-clock time.
    """
    if tz is not None and when.tzinfo is None:
        return when.replace(tzinfo=tz)
    if tz is None and when.tzinfo is not None:
        return when.replace(tzinfo=None)
    return when


def all_occurrences(occurrences: Occurrences, stop: Optional[Stop] = None) -> List[datetime]:
    return list(occurrences.with_stop(stop))


def between(
    occurrences: Occurrences,
    after: datetime,
    before: datetime,
    inclusive: bool = False,
    stop: Optional[Stop] = None,
) -> List[datetime]:
    result: List[datetime] = []
    for when in occurrences:
        if when < after or (not inclusive and when == after):
            continue
        if when > before or (not inclusive and when == before):
            break
        if stop is not None and not stop(when, len(result)):
            break
        result.append(when)
    return result


def after(occurrences: Occurrences, when: datetime, inclusive: bool = False) -> Optional[datetime]:
    for candidate in occurrences:
        if candidate > when or (inclusive and candidate == when):
            return candidate
    return None


def before(occurrences: Occurrences, when: datetime, inclusive: bool = False) -> Optional[datetime]:
    last = None
    for candidate in occurrences:
        if candidate > when or (not inclusive and candidate == when):
            break
        last = candidate
    return last


def first(occurrences: Occurrences) -> Optional[datetime]:
    return occurrences.first()


class Queryable(ABC):
    """Query methods shared by single rules and rule sets."""

    @property
    def tzinfo(self) -> Optional[TzInfo]:
        return None

    @abstractmethod
    def occurrences(self, config: Any = None) -> Occurrences:
        """Fresh lazy sequence of this object's occurrences."""

    def __iter__(self) -> Iterator[datetime]:
        return iter(self.occurrences())

    def all(self, stop: Optional[Stop] = None, config: Any = None) -> List[datetime]:
        return all_occurrences(self.occurrences(config), stop)

    def between(
        self,
        after: datetime,
        before: datetime,
        inclusive: bool = False,
        stop: Optional[Stop] = None,
        config: Any = None,
    ) -> List[datetime]:
        tz = self.tzinfo
        return between(self.occurrences(config), align(after, tz), align(before, tz), inclusive, stop)

    def after(self, when: datetime, inclusive: bool = False, config: Any = None) -> Optional[datetime]:
        return after(self.occurrences(config), align(when, self.tzinfo), inclusive)

    def before(self, when: datetime, inclusive: bool = False, config: Any = None) -> Optional[datetime]:
        return before(self.occurrences(config), align(when, self.tzinfo), inclusive)

    def first(self, config: Any = None) -> Optional[datetime]:
        return first(self.occurrences(config))
