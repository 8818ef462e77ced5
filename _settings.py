"""
Runtime options for frag2mtx.

Options cover the compressed outputs (threads, level, member size), how the
matrix text is batched, and how often counting progress is logged. Each one
can be set on :data:`settings`, temporarily through :meth:`SettingsManager.override`,
or before import with a ``FRAG2MTX_<OPTION>`` environment variable.
"""

from __future__ import annotations

import os
import warnings
from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, NamedTuple

_ENV_PREFIX = "FRAG2MTX_"

Validator = Callable[[Any], None]


class RegisteredOption(NamedTuple):
    """An option name with its default, help text and validator."""

    option: str
    default_value: Any
    description: str
    validate: Validator

    def describe(self) -> str:
        return (
            f"{self.option}: `{type(self.default_value).__name__}`\n"
            f"    {self.description} (default: `{self.default_value!r}`)."
        )


def env_int(option: str, default_value: int) -> int:
    """Read ``FRAG2MTX_<OPTION>`` as an integer, falling back to the default."""
    key = f"{_ENV_PREFIX}{option.upper()}"
    raw = os.environ.get(key)
    if raw is None:
        return default_value
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{key}={raw!r} is not an integer") from e


@dataclass
class SettingsManager:
    """Registry of frag2mtx options and their current values."""

    _registered_options: dict[str, RegisteredOption] = field(default_factory=dict)
    _config: dict[str, Any] = field(default_factory=dict)

    def register(
        self,
        option: str,
        *,
        default_value: Any,
        description: str,
        validate: Validator,
        from_env: Callable[[str, Any], Any] | None = None,
    ) -> None:
        """
        Add an option and set its starting value.

        The starting value comes from ``from_env(option, default_value)`` when
        given, otherwise the default. Both are checked with ``validate``.
        """
        try:
            validate(default_value)
        except (ValueError, TypeError) as e:
            e.add_note(f"default for option {option!r}")
            raise
        self._registered_options[option] = RegisteredOption(
            option, default_value, description, validate
        )
        value = default_value if from_env is None else from_env(option, default_value)
        validate(value)
        self._config[option] = value

    def describe(
        self,
        option: str | Iterable[str] | None = None,
        *,
        should_print_description: bool = True,
    ) -> str:
        """Return (and by default print) the help text of one, several or all options."""
        if option is None:
            option = list(self._registered_options)
        if isinstance(option, str):
            doc = self._registered_options[option].describe()
        else:
            doc = "\n".join(self._registered_options[o].describe() for o in option)
        if should_print_description:
            print(doc)
        return doc

    def __setattr__(self, option: str, val: Any) -> None:
        if option in ("_registered_options", "_config"):
            return super().__setattr__(option, val)
        if option not in self._registered_options:
            raise AttributeError(f"{option} is not an available option for frag2mtx.")
        self._registered_options[option].validate(val)
        self._config[option] = val

    def __getattr__(self, option: str) -> Any:
        # Only reached for names that are not real attributes
        if option.startswith("_"):
            raise AttributeError(option)
        try:
            return self._config[option]
        except KeyError:
            raise AttributeError(f"{option} not found.") from None

    def reset(self, option: str | Iterable[str]) -> None:
        """Restore option(s) to the registered default."""
        options = [option] if isinstance(option, str) else option
        for opt in options:
            self._config[opt] = self._registered_options[opt].default_value

    @contextmanager
    def override(self, **overrides: Any):
        """Set options for the duration of a ``with`` block."""
        restore = {name: getattr(self, name) for name in overrides}
        try:
            for name, value in overrides.items():
                setattr(self, name, value)
            yield
        finally:
            for name, value in restore.items():
                self._config[name] = value

    def __repr__(self) -> str:
        params = "".join(f"\t{k}={v!r},\n" for k, v in self._config.items())
        return f"{type(self).__name__}(\n{params})"


settings = SettingsManager()


def validate_int(val: Any) -> None:
    if not isinstance(val, int) or isinstance(val, bool):
        raise TypeError(f"{val!r} is not an int")


def validate_positive_int(val: Any) -> None:
    validate_int(val)
    if val <= 0:
        raise ValueError(f"{val} must be positive")


def validate_compression_level(val: Any) -> None:
    validate_int(val)
    if not 0 <= val <= 9:
        raise ValueError(f"compression_level ({val}) must be between 0 and 9")


def validate_block_size(val: Any) -> None:
    validate_positive_int(val)
    # Tiny members compress badly and flood the worker queue
    if val < 4096:
        warnings.warn(
            f"block_size ({val}) is very small and will compress poorly", UserWarning
        )


settings.register(
    "num_threads",
    default_value=4,
    description="Number of compression threads used for the gzip outputs",
    validate=validate_positive_int,
    from_env=env_int,
)

settings.register(
    "compression_level",
    default_value=6,
    description="Gzip compression level (0-9) for features.tsv.gz and matrix.mtx.gz",
    validate=validate_compression_level,
    from_env=env_int,
)

settings.register(
    "block_size",
    default_value=131072,
    description="Uncompressed bytes per gzip member handed to a compression worker",
    validate=validate_block_size,
    from_env=env_int,
)

settings.register(
    "flush_rows",
    default_value=5000,
    description="Number of matrix rows buffered before flushing text to the compressor",
    validate=validate_positive_int,
    from_env=env_int,
)

settings.register(
    "progress_interval",
    default_value=1_000_000,
    description="Number of fragment records between progress log messages",
    validate=validate_positive_int,
    from_env=env_int,
)
