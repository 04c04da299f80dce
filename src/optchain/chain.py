"""Builder-style wrapper exposing the combinators as methods.

    name = (
        chain(order)
        .with_(lambda o: o.customer)
        .key("nickname")
        .recover_with(lambda: lookup_display_name(order))
        .get()
    )

Each step returns a new ``Chain``; terminal methods (``get``, ``return_``,
``let``, ``try_do``, ``try_let``) return plain values or an ``Outcome``.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

from optchain import combinators as c

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

    from optchain.outcome import Outcome


@dataclasses.dataclass(frozen=True, slots=True)
class Chain[T]:
    """An immutable holder for an optional value."""

    value: T | None = None

    def get(self) -> T | None:
        return self.value

    @property
    def is_empty(self) -> bool:
        return self.value is None

    # --- steps ---

    def if_(self, predicate: Callable[[T], object]) -> Chain[T]:
        return Chain(c.if_(self.value, predicate))

    def unless(self, predicate: Callable[[T], object]) -> Chain[T]:
        return Chain(c.unless(self.value, predicate))

    def with_[R](self, project: Callable[[T], R]) -> Chain[R]:
        return Chain(c.with_(self.value, project))

    def key(self, key: Hashable) -> Chain[Any]:
        """Total lookup on a mapping value; see ``with_key``."""
        return Chain(c.with_key(self.value, key))  # type: ignore[arg-type]

    def each[R](self, project: Callable[[Any], R]) -> Chain[list[R]]:
        """Element-wise projection on an iterable value; see ``with_each``."""
        return Chain(c.with_each(self.value, project))  # type: ignore[arg-type]

    def do(self, action: Callable[[T], object]) -> Chain[T]:
        return Chain(c.do(self.value, action))

    def each_do(self, action: Callable[[Any], object]) -> Chain[T]:
        return Chain(c.do_each(self.value, action))  # type: ignore[type-var]

    def if_do(
        self, predicate: Callable[[T], object], action: Callable[[T], object]
    ) -> Chain[T]:
        return Chain(c.if_do(self.value, predicate, action))

    def recover(self, fallback: T) -> Chain[T]:
        return Chain(c.recover(self.value, fallback))

    def recover_with(self, supplier: Callable[[], T]) -> Chain[T]:
        return Chain(c.recover_with(self.value, supplier))

    # --- terminals ---

    def return_[R](self, project: Callable[[T], R], fallback: R) -> R:
        return c.return_(self.value, project, fallback)

    def let[R](self, project: Callable[[T], R], fallback: R) -> R:
        return c.let(self.value, project, fallback)

    def try_do(self, action: Callable[[T], object]) -> Outcome[T]:
        return c.try_do(self.value, action)

    def try_let[R](self, project: Callable[[T], R]) -> Outcome[R]:
        return c.try_let(self.value, project)


def chain[T](value: T | None) -> Chain[T]:
    """Start a chain from ``value`` (which may be None)."""
    return Chain(value)
