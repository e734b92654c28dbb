"""
Exceptions raised by the babygrad autograd core.

Every error here is a contract violation surfaced to the direct caller;
nothing in the engine retries or recovers from them. Each class also derives
from the closest built-in exception so callers can catch either.
"""

from typing import Optional, Tuple


class BabygradError(Exception):
    """Base class for all babygrad errors."""


class ShapeError(BabygradError, ValueError):
    """
    Raised when operands have incompatible shapes, either in a Function's
    forward pass or when a gradient is accumulated into a tensor.
    """

    def __init__(self, message: str, *shapes: Tuple[int, ...]):
        super().__init__(message)
        self.shapes = shapes


class ArityError(BabygradError, TypeError):
    """
    Raised when a Function is applied to the wrong number of tensors, or when
    its backward returns a different number of gradients than its arity.
    """

    def __init__(
        self, function: str, expected: int, actual: int, what: str = "inputs"
    ):
        super().__init__(f"{function} expects {expected} {what}, got {actual}")
        self.function = function
        self.expected = expected
        self.actual = actual


class ContextError(BabygradError, RuntimeError):
    """Raised when a Context is written twice or with too many values."""


class UnsavedContextError(ContextError, LookupError):
    """
    Raised when backward reads a saved-value index that was never written
    (or that was dropped by a release). Always indicates a bug in the
    forward/backward pairing of a Function.
    """

    def __init__(self, index: int, saved: int):
        super().__init__(
            f"Context has no saved value at index {index} ({saved} value(s) saved)"
        )
        self.index = index
        self.saved = saved


class NonScalarBackwardError(BabygradError, ValueError):
    """
    Raised when backward() is called with the implicit seed on a tensor that
    holds more than one element, or with an explicit seed of the wrong shape.
    """

    def __init__(
        self,
        shape: Tuple[int, ...],
        seed_shape: Optional[Tuple[int, ...]] = None,
    ):
        if seed_shape is None:
            message = (
                f"backward() without a gradient requires a single-element tensor, "
                f"got shape {shape}"
            )
        else:
            message = (
                f"Seed gradient shape {seed_shape} does not match tensor shape {shape}"
            )
        super().__init__(message)
        self.shape = shape
        self.seed_shape = seed_shape


class GraphMismatchError(BabygradError, ValueError):
    """Raised when the inputs of a Function belong to different graph arenas."""


class GraphReleasedError(BabygradError, RuntimeError):
    """
    Raised when a released graph arena is used, or when backward runs
    through a Context that was already released by an earlier pass.
    """


class NonDifferentiableError(BabygradError, RuntimeError):
    """
    Raised when backward is requested from a terminal Function, or when a
    backward returns a nonzero gradient for an input it declares
    non-differentiable.
    """

    def __init__(self, function: str, position: Optional[int] = None):
        if position is None:
            message = f"{function} has no backward pass"
        else:
            message = (
                f"{function} returned a nonzero gradient for input {position}, "
                f"which it declares non-differentiable"
            )
        super().__init__(message)
        self.function = function
        self.position = position
