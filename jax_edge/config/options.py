"""Hierarchical run options.

Options are grouped in sections (``gem``, ``2fluid``, ``Ni`` ...). Lookups
are case-insensitive, unknown keys fall back to the supplied default and
values are coerced to the type of that default, so YAML strings such as
``"true"`` or ``"1e-3"`` behave as expected.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from jax_edge.input_validation import ValidationError

log = logging.getLogger(__name__)

_TRUE = {"true", "yes", "on", "1", "y", "t"}
_FALSE = {"false", "no", "off", "0", "n", "f"}


def _coerce(value: Any, default: Any, key: str) -> Any:
    if default is None or value is None:
        return value
    try:
        if isinstance(default, bool):
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in _TRUE:
                    return True
                if lowered in _FALSE:
                    return False
                raise ValueError(value)
            return bool(value)
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
        if isinstance(default, str):
            return str(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"Option '{key}' has value {value!r}, expected {type(default).__name__}"
        ) from exc
    return value


class Options:
    """A section of options with nested subsections."""

    def __init__(self, data: Optional[Mapping[str, Any]] = None, name: str = "root"):
        self.name = name
        self._values: Dict[str, Any] = {}
        self._sections: Dict[str, "Options"] = {}
        for key, value in (data or {}).items():
            if isinstance(value, Mapping):
                self._sections[str(key).lower()] = Options(value, name=str(key))
            else:
                self._values[str(key).lower()] = value

    def section(self, name: str) -> "Options":
        """Return a subsection, creating an empty one if absent."""
        key = name.lower()
        if key not in self._sections:
            self._sections[key] = Options(name=name)
        return self._sections[key]

    def has_section(self, name: str) -> bool:
        return name.lower() in self._sections

    def is_set(self, key: str) -> bool:
        """Whether a value was given explicitly."""
        return key.lower() in self._values

    def get(self, key: str, default: Any = None) -> Any:
        """Value of ``key`` coerced to the type of ``default``."""
        lookup = key.lower()
        if lookup in self._values:
            value = _coerce(self._values[lookup], default, f"{self.name}:{key}")
            log.debug(f"Option {self.name}:{key} = {value}")
            return value
        log.debug(f"Option {self.name}:{key} = {default} (default)")
        return default

    def set(self, key: str, value: Any) -> None:
        self._values[key.lower()] = value

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self._values)
        for key, sub in self._sections.items():
            out[sub.name] = sub.to_dict()
        return out

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "Options":
        from jax_edge.config.loader import load_config
        return cls(load_config(path))

    def __repr__(self) -> str:
        return f"Options({self.name!r}, {self.to_dict()!r})"
