"""Input validation utilities for edge plasma models.

These functions provide runtime validation of grid quantities and options
so that configuration mistakes are caught at initialisation, with the name
of the offending quantity in the message.
"""

from typing import Any, Iterable, Optional, Tuple
import jax.numpy as jnp

Array = jnp.ndarray


class ValidationError(ValueError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(ValidationError):
    """Raised for missing grid quantities or invalid option combinations."""

    def __init__(self, message: str, quantity: Optional[str] = None):
        super().__init__(message)
        self.quantity = quantity


def validate_positive(value: float, name: str) -> None:
    """Validate that a value is strictly positive.

    Args:
        value: The value to check
        name: Parameter name for error messages

    Raises:
        ValidationError: If value <= 0
    """
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")


def validate_non_negative(value: float, name: str) -> None:
    """Validate that a value is non-negative.

    Raises:
        ValidationError: If value < 0
    """
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")


def validate_shape(array: Array, expected_shape: Tuple[int, ...], name: str) -> None:
    """Validate that an array has the expected shape.

    Args:
        array: The array to check
        expected_shape: Expected shape tuple
        name: Array name for error messages

    Raises:
        ValidationError: If shape doesn't match
    """
    if tuple(array.shape) != tuple(expected_shape):
        raise ValidationError(
            f"{name} has wrong shape: expected {tuple(expected_shape)}, got {tuple(array.shape)}"
        )


def validate_choice(value: Any, choices: Iterable[Any], name: str) -> None:
    """Validate that a value is one of a fixed set of choices.

    Raises:
        ValidationError: If value is not in choices
    """
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(f"{name} must be one of {choices}, got {value!r}")


def validate_finite(array: Array, name: str) -> None:
    """Validate that an array contains no NaN or Inf values.

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not bool(jnp.all(jnp.isfinite(array))):
        raise ValidationError(f"{name} contains NaN or Inf values")


def require(value: Any, name: str, source: str = "grid") -> Any:
    """Return value, raising ConfigurationError if it was not found.

    Args:
        value: Result of a lookup that returns None when missing
        name: Quantity name for error messages
        source: Where the lookup happened (for the message)

    Raises:
        ConfigurationError: If value is None
    """
    if value is None:
        raise ConfigurationError(f"Required quantity '{name}' not found in {source}", quantity=name)
    return value
