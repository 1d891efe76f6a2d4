"""Explicit success/failure values.

Read-only operations (git queries, hosting API reads, registry lookups,
release-train discovery, pull request validation) return a ``Result``
instead of raising, so callers checking many branches or labels can
decide per item what to do with a failure.

    match fetch_active_release_trains(github, next_branch="main", manifest_path="package.json"):
        case Ok(trains):
            print(trains.latest.branch_name)
        case Err(error):
            print(error.message)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

__all__ = ["Ok", "Err", "Result"]


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful outcome carrying ``value``."""

    value: T

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def unwrap_or[D](self, default: D) -> T:
        """Return the contained value; ``default`` is ignored."""
        del default
        return self.value

    def map[U](self, f: Callable[[T], U]) -> Ok[U]:
        """Transform the value.

        Args:
            f: Applied to the contained value.

        Returns:
            A new ``Ok`` wrapping ``f(value)``.
        """
        return Ok(f(self.value))

    def map_err(self, f: Callable[[object], object]) -> Ok[T]:
        """Return self; there is no error to transform."""
        del f
        return self


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed outcome carrying ``error``, usually a frozen error dataclass."""

    error: E

    def unwrap(self) -> None:
        """Raise ``ValueError``: there is no value to return."""
        raise ValueError(f"unwrap() on Err: {self.error}")

    def unwrap_or[D](self, default: D) -> D:
        """Return ``default`` in place of the missing value."""
        return default

    def map(self, f: Callable[[object], object]) -> Err[E]:
        """Return self; there is no value to transform."""
        del f
        return self

    def map_err[F](self, f: Callable[[E], F]) -> Err[F]:
        """Transform the error, e.g. to wrap a git error into a release error.

        Args:
            f: Applied to the contained error.

        Returns:
            A new ``Err`` wrapping ``f(error)``.
        """
        return Err(f(self.error))


type Result[T, E] = Ok[T] | Err[E]
