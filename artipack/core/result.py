"""Result type for expected failures.

Loading a catalog, reading a registry override file or downloading a tool
can fail for reasons the caller must handle (missing directory, bad TOML,
timeout). Those operations return ``Ok(value)`` or ``Err(error)``:

    result = load_catalog(path)
    if isinstance(result, Err):
        console.error(result.error.message)
        return
    index = result.value
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def unwrap_or(self, default: T) -> T:
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def unwrap_or[T](self, default: T) -> T:
        return default

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
