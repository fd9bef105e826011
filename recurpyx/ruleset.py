# ruleset.py
"""
RuleSet: rrules + rdates, minus exrules + exdates

Sequences are merged lazily (heap merge of ascending streams); exclusions
always win on an exact instant match, whatever produced the inclusion.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, replace
from datetime import datetime, tzinfo as TzInfo
from typing import Any, Iterator, Optional, Tuple

from .engine import DEFAULT_CONFIG, GeneratorConfig, OccurrenceGenerator
from .errors import ValidationError
from .query import Occurrences, Queryable
from .rule import RecurrenceRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleSet(Queryable):
    rrules: Tuple[RecurrenceRule, ...] = ()
    exrules: Tuple[RecurrenceRule, ...] = ()
    rdates: Tuple[datetime, ...] = ()
    exdates: Tuple[datetime, ...] = ()

    def __post_init__(self) -> None:
        for name in ("rrules", "exrules", "rdates", "exdates"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        stamps = [r.anchor for r in self.rrules + self.exrules] + list(self.rdates + self.exdates)
        aware = {when.tzinfo is not None for when in stamps}
        if len(aware) > 1:
            raise ValidationError("ruleset", stamps, "cannot mix naive and time zone aware dates")

    @classmethod
    def from_rule(cls, rule: RecurrenceRule) -> "RuleSet":
        return cls(rrules=(rule,))

    @property
    def tzinfo(self) -> Optional[TzInfo]:
        for rule in self.rrules + self.exrules:
            return rule.tzinfo
        for when in self.rdates + self.exdates:
            return when.tzinfo
        return None

    def occurrences(self, config: Any = None) -> Occurrences:
        config = config or DEFAULT_CONFIG
        return Occurrences(lambda: self._generate(config))

    def to_string(self) -> str:
        from .render import ruleset_to_string

        return ruleset_to_string(self)

    def __str__(self) -> str:
        return self.to_string()

    def _generate(self, config: GeneratorConfig) -> Iterator[datetime]:
        cap = config.max_occurrences
        if cap is not None and cap <= 0:
            return
        # components run uncapped; only what the set emits counts against the cap
        component = replace(config, max_occurrences=None)
        included = heapq.merge(
            *(iter(OccurrenceGenerator(rule, component)) for rule in self.rrules),
            iter(sorted(self.rdates)),
        )
        excluded = heapq.merge(
            *(iter(OccurrenceGenerator(rule, component)) for rule in self.exrules),
            iter(sorted(self.exdates)),
        )
        next_excluded = next(excluded, None)
        last = None
        emitted = 0
        skipped = 0
        for when in included:
            if last is not None and when == last:
                continue
            last = when
            while next_excluded is not None and next_excluded < when:
                next_excluded = next(excluded, None)
            if next_excluded is not None and next_excluded == when:
                skipped += 1
                if skipped > config.max_idle_periods:
                    logger.debug("%d inclusions in a row excluded, ending rule set", config.max_idle_periods)
                    return
                continue
            skipped = 0
            yield when
            emitted += 1
            if cap is not None and emitted >= cap:
                logger.debug("occurrence cap of %d reached, truncating rule set", cap)
                return
