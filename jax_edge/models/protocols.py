"""Protocols for physics models supporting split-operator integration."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SplitRHS(Protocol):
    """Protocol for models whose right-hand side splits in two parts.

    The physics residual holds every physical term; the dissipation
    residual holds only artificial dissipation. Both are pure functions
    of the state and recompute the closure themselves, so an integrator
    may call them in any order, any number of times per step.
    """

    def physics_rhs(self, state: Any) -> Any:
        """Time derivatives from the physical terms.

        Args:
            state: Current state of the system

        Returns:
            State-shaped time derivatives, zero for disabled fields
        """
        ...

    def dissipation_rhs(self, state: Any) -> Any:
        """Time derivatives from artificial dissipation only.

        Args:
            state: Current state of the system

        Returns:
            State-shaped time derivatives, zero for disabled fields
        """
        ...
