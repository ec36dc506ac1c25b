"""Parsing of ``key=value`` parameter token lists."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Callable, TypeVar

from annkit.errors import ConfigurationError

T = TypeVar("T")


def parse_tokens(tokens: Iterable[str] | None, *, what: str = "parameter") -> dict[str, str]:
    """Split ``["a=1", "b=2"]`` into an ordered mapping.

    Raises:
        ConfigurationError: If a token is not a string, lacks ``=``, has an
            empty key, or repeats a key.
    """
    if tokens is None:
        return {}
    if isinstance(tokens, (str, bytes)):
        raise ConfigurationError(
            f"{what} list must be a sequence of 'key=value' strings, not a single string"
        )

    parsed: dict[str, str] = {}
    for position, token in enumerate(tokens):
        if not isinstance(token, str):
            raise ConfigurationError(
                f"{what} #{position} must be a string, got {type(token).__name__}"
            )
        key, sep, value = token.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(f"{what} #{position} ({token!r}) is not of the form key=value")
        if key in parsed:
            raise ConfigurationError(f"{what} '{key}' is specified more than once")
        parsed[key] = value.strip()
    return parsed


class Params:
    """Parameter bag that remembers which keys were consumed."""

    def __init__(self, tokens: Iterable[str] | None = None, *, what: str = "parameter") -> None:
        self._what = what
        self._values = parse_tokens(tokens, what=what)
        self._used: set[str] = set()

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def to_tokens(self) -> tuple[str, ...]:
        return tuple(f"{key}={value}" for key, value in self._values.items())

    def _get(self, key: str, default: T, convert: Callable[[str], T]) -> T:
        self._used.add(key)
        raw = self._values.get(key)
        if raw is None:
            return default
        try:
            return convert(raw)
        except ValueError as exc:
            raise ConfigurationError(
                f"{self._what} '{key}' has invalid value {raw!r}: {exc}"
            ) from exc

    def get_int(self, key: str, default: int, *, minimum: int | None = None) -> int:
        value = self._get(key, default, int)
        if minimum is not None and value < minimum:
            raise ConfigurationError(f"{self._what} '{key}' ({value}) should be >= {minimum}")
        return value

    def get_float(self, key: str, default: float, *, positive: bool = False) -> float:
        value = self._get(key, default, float)
        if positive and not value > 0:
            raise ConfigurationError(f"{self._what} '{key}' ({value}) should be > 0")
        return value

    def get_str(self, key: str, default: str) -> str:
        return self._get(key, default, str)

    def check_unused(self) -> None:
        """Reject keys nobody asked for."""
        unused = [key for key in self._values if key not in self._used]
        if unused:
            raise ConfigurationError(
                f"Unknown {self._what}(s): {', '.join(sorted(unused))}"
            )
