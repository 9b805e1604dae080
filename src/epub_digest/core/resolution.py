"""Ordered fallback chains of lookup strategies."""

import logging
from dataclasses import dataclass
from typing import Callable, Generic, ParamSpec, TypeVar

log = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


@dataclass
class Strategy(Generic[P, T]):
    """A named lookup that returns None when it does not apply."""

    name: str
    fn: Callable[P, T | None]


def first_match(
    strategies: list[Strategy[P, T]], *args: P.args, **kwargs: P.kwargs
) -> tuple[str, T] | None:
    """Run strategies in priority order and return the first hit with its name."""
    for strategy in strategies:
        result = strategy.fn(*args, **kwargs)
        if result is not None:
            log.debug("Strategy %s matched", strategy.name)
            return strategy.name, result
    return None
