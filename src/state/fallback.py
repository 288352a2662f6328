"""
Tri-state outcomes and ordered fallback chains.

Each rung of a chain returns one of:
- `Hit(value)`:      the rung produced a value; the chain stops.
- `Miss(reason)`:    nothing usable here; try the next rung.
- `Failed(error)`:   the rung broke (I/O, transport); try the next rung but
                     remember the error for reporting.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

from common.log import get_logger


T = TypeVar("T")

log = get_logger(__name__)


@dataclass(frozen=True)
class Hit(Generic[T]):
    value: T


@dataclass(frozen=True)
class Miss:
    reason: str


@dataclass(frozen=True)
class Failed:
    error: Exception


Outcome = Union[Hit[T], Miss, Failed]


@dataclass(frozen=True)
class Strategy(Generic[T]):
    name: str
    attempt: Callable[[], Any]  # returns an Outcome, or an awaitable of one


@dataclass
class ChainResult(Generic[T]):
    """Winning rung (if any) plus what happened on each rung tried."""

    name: Optional[str] = None
    value: Optional[T] = None
    trail: List[Tuple[str, Union[Miss, Failed]]] = field(default_factory=list)

    @property
    def hit(self) -> bool:
        return self.name is not None

    @property
    def errors(self) -> List[Exception]:
        return [o.error for _, o in self.trail if isinstance(o, Failed)]


def _record(result: ChainResult[T], name: str, outcome: "Outcome[T]") -> bool:
    if isinstance(outcome, Hit):
        result.name = name
        result.value = outcome.value
        return True
    if isinstance(outcome, Failed):
        log.warning("strategy_failed", strategy=name, error=str(outcome.error))
    else:
        log.debug("strategy_miss", strategy=name, reason=outcome.reason)
    result.trail.append((name, outcome))
    return False


def run_chain(strategies: Sequence[Strategy[T]]) -> ChainResult[T]:
    """Try `strategies` in order; stop at the first Hit."""
    result: ChainResult[T] = ChainResult()
    for strategy in strategies:
        if _record(result, strategy.name, strategy.attempt()):
            break
    return result


async def arun_chain(strategies: Sequence[Strategy[T]]) -> ChainResult[T]:
    """Like `run_chain`, awaiting rungs that are coroutines."""
    result: ChainResult[T] = ChainResult()
    for strategy in strategies:
        outcome = strategy.attempt()
        if inspect.isawaitable(outcome):
            outcome = await outcome
        if _record(result, strategy.name, outcome):
            break
    return result


__all__ = ["Hit", "Miss", "Failed", "Outcome", "Strategy", "ChainResult", "run_chain", "arun_chain"]
