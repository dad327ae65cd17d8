"""Simulation state containers."""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Mapping, Tuple
import jax
import jax.numpy as jnp
from jax import Array


@dataclass(frozen=True)
class State:
    """Named fields advanced by the integrator at a single time.

    Fields are stored in insertion order. Disabled quantities stay in the
    mapping at their pinned value so that output and restarts see every
    variable a model defines.
    """

    fields: Dict[str, Array] = field(default_factory=dict)
    time: float = 0.0
    step: int = 0

    def __getitem__(self, name: str) -> Array:
        return self.fields[name]

    def __contains__(self, name: str) -> bool:
        return name in self.fields

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self.fields)

    def get(self, name: str, default=None):
        return self.fields.get(name, default)

    def replace(self, **kwargs) -> "State":
        """Return new State with specified attributes replaced."""
        from dataclasses import replace as dc_replace
        return dc_replace(self, **kwargs)

    def with_fields(self, **updates: Array) -> "State":
        """Return new State with some named fields replaced."""
        fields = dict(self.fields)
        for name, value in updates.items():
            if name not in fields:
                raise KeyError(f"State has no field '{name}'")
            fields[name] = value
        return self.replace(fields=fields)

    def map(self, fn: Callable[[str, Array], Array]) -> "State":
        """Apply fn(name, array) to every field."""
        return self.replace(fields={k: fn(k, v) for k, v in self.fields.items()})

    def zeros_like(self) -> "State":
        return self.map(lambda _, v: jnp.zeros_like(v))

    @classmethod
    def from_mapping(cls, fields: Mapping[str, Array], time: float = 0.0,
                     step: int = 0) -> "State":
        return cls(fields={k: jnp.asarray(v) for k, v in fields.items()},
                   time=time, step=step)


# Register State as a JAX pytree for JIT compatibility
def _state_flatten(state):
    names = tuple(state.fields)
    children = (tuple(state.fields[k] for k in names), state.time, state.step)
    return children, names


def _state_unflatten(names, children):
    values, time, step = children
    return State(fields=dict(zip(names, values)), time=time, step=step)


jax.tree_util.register_pytree_node(State, _state_flatten, _state_unflatten)
