import logging
from dataclasses import dataclass
from typing import (
    Any,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

import numpy as np

from babygrad.backend import Backend, TensorDataInfo, default_backend
from babygrad.config import get_config
from babygrad.engine import backpropagate
from babygrad.errors import (
    ArityError,
    ContextError,
    GraphMismatchError,
    GraphReleasedError,
    NonDifferentiableError,
    NonScalarBackwardError,
    ShapeError,
    UnsavedContextError,
)
from babygrad.graph import Graph, current_graph

logger = logging.getLogger(__name__)


class Context:
    """
    Per-invocation scratch record for a `Function`.

    A fresh `Context` is created every time a Function is applied. The forward
    pass stores whatever inputs its backward pass will need through
    `save_for_backwards`, and the backward pass reads them back by position.
    The context also carries the backend both passes compute with.
    """

    def __init__(self, backend: Backend, arity: int):
        """
        Args:
            backend (Backend): Backend used by the forward and backward pass.
            arity (int): Number of inputs of the owning Function, which bounds
                how many values may be saved.
        """
        self.backend = backend
        self.arity = arity
        self._saved: Optional[Tuple[np.ndarray, ...]] = None
        self.released = False

    def save_for_backwards(self, *values: np.ndarray) -> None:
        """
        Store copies of forward inputs for the backward pass.

        Saving is write-once per context.

        Args:
            *values (np.ndarray): Arrays to keep, retrievable later by position.

        Raises:
            ContextError: If values were already saved, the context was released,
                or more values are given than the Function has inputs.
        """
        if self.released:
            raise ContextError("Cannot save values into a released Context")
        if self._saved is not None:
            raise ContextError("save_for_backwards may only be called once per Context")
        if len(values) > self.arity:
            raise ContextError(
                f"Cannot save {len(values)} values in a Context of arity {self.arity}"
            )
        self._saved = tuple(self.backend.identity(v) for v in values)

    @property
    def saved_values(self) -> Tuple[np.ndarray, ...]:
        """
        All saved values, in the order they were saved.

        Raises:
            UnsavedContextError: If the context was released.
        """
        if self.released:
            raise UnsavedContextError(0, 0)
        return self._saved or ()

    def saved(self, index: int) -> np.ndarray:
        """
        Return the saved value at ``index``.

        Raises:
            UnsavedContextError: If nothing was saved at ``index``.
        """
        saved = () if self.released else (self._saved or ())
        if not 0 <= index < len(saved):
            raise UnsavedContextError(index, len(saved))
        return saved[index]

    def release(self) -> None:
        """Drop the saved values once the backward pass no longer needs them."""
        self._saved = None
        self.released = True


@dataclass(frozen=True)
class History:
    """
    How a non-leaf `Tensor` was produced.

    Attributes:
        function (Type[Function]): The Function that produced the tensor.
        ctx (Context): The context saved by that Function's forward pass.
        parents (Tuple[int, ...]): Arena indices of the input tensors, in
            argument order.
    """

    function: Type["Function"]
    ctx: Context
    parents: Tuple[int, ...]


class Function:
    """
    Base class for differentiable operations.

    Subclasses implement `forward` and `backward` as static methods and declare:

    - ``arity``: the number of input tensors.
    - ``differentiable``: one flag per input, False where the gradient is
      identically zero. `run_backward` enforces it.
    - ``terminal``: True for operations with no backward at all. Their output
      is created as a leaf so they never appear in the middle of a graph.

    Functions are stateless: everything the backward pass needs goes through the
    `Context`. Some subclasses can be found in the `functional.py` module.
    """

    arity: int = 1
    differentiable: Tuple[bool, ...] = (True,)
    terminal: bool = False

    @staticmethod
    def forward(ctx: Context, *args: np.ndarray, **kwargs: Any) -> np.ndarray:
        """
        Perform the forward pass of this operation.

        Args:
            ctx (Context): Fresh context for this invocation.
            *args (np.ndarray): Data arrays of the input tensors.
            **kwargs (Any): Additional keyword arguments.

        Returns:
            np.ndarray: The result of the forward pass.
        """
        raise NotImplementedError("Forward pass not implemented for this function")

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray, ...]:
        """
        Perform the backward pass of this operation.

        In this context:
        - "grad" is the gradient of the loss with respect to the *output* of this
          operation (dL/d[out]).
        - The return value holds the gradient of the loss with respect to each
          *input* (dL/d[input]), one entry per input, in argument order.

        Args:
            ctx (Context): The context filled in by `forward`.
            grad (np.ndarray): The gradient with respect to the output.

        Returns:
            Tuple[np.ndarray, ...]: The gradients with respect to the inputs.
        """
        raise NotImplementedError("Backward pass not implemented for this function")

    @classmethod
    def apply(cls, *tensors: "Tensor", **kwargs: Any) -> "Tensor":
        """
        Apply this function to the given tensors.

        This method:
        1) Checks the number of inputs against the declared arity.
        2) Finds the arena shared by the inputs.
        3) Runs `forward` on the inputs' data with a fresh `Context`.
        4) Wraps the result in a new `Tensor` whose history references this
           function, the context and the inputs' arena indices.

        Args:
            *tensors (Tensor): Input tensors to the operation.
            **kwargs (Any): Additional keyword arguments passed to `forward`.

        Returns:
            Tensor: The resulting tensor after the forward operation.

        Raises:
            ArityError: If the number of inputs does not match ``arity``.
            GraphMismatchError: If the inputs belong to different arenas.
            GraphReleasedError: If the shared arena was released.
            ShapeError: If the backend rejects the input shapes.
        """
        if len(tensors) != cls.arity:
            raise ArityError(cls.__name__, cls.arity, len(tensors))

        graph = Function.shared_graph(tensors)
        for tensor in tensors:
            if tensor.graph is None:
                tensor.attach(graph)

        backend = tensors[0].backend
        ctx = Context(backend, cls.arity)
        try:
            out_data = cls.forward(ctx, *(t.data for t in tensors), **kwargs)
        except ShapeError:
            raise
        except ValueError as e:
            shapes = tuple(t.shape for t in tensors)
            raise ShapeError(
                f"{cls.__name__} got incompatible shapes {shapes}", *shapes
            ) from e

        if cls.terminal:
            ctx.release()
            return Tensor(out_data, graph=graph, backend=backend)

        history = History(cls, ctx, tuple(t.node_id for t in tensors))
        return Tensor(out_data, history=history, graph=graph, backend=backend)

    @classmethod
    def run_backward(cls, ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray, ...]:
        """
        Call `backward` and check it produced exactly one gradient per input,
        and only zeros for inputs marked non-differentiable.

        Raises:
            NonDifferentiableError: If this function is terminal, or returned a
                nonzero gradient for a non-differentiable input.
            ArityError: If the number of gradients does not match ``arity``.
        """
        if cls.terminal:
            raise NonDifferentiableError(cls.__name__)
        grads = cls.backward(ctx, grad)
        if not isinstance(grads, tuple):
            grads = (grads,)  # handle single input
        if len(grads) != cls.arity:
            raise ArityError(cls.__name__, cls.arity, len(grads), what="gradients")
        for position, (differentiable, input_grad) in enumerate(
            zip(cls.differentiable, grads)
        ):
            if not differentiable and np.any(input_grad):
                raise NonDifferentiableError(cls.__name__, position)
        return grads

    @staticmethod
    def shared_graph(tensors: Sequence["Tensor"]) -> Graph:
        """
        Return the one arena all attached ``tensors`` belong to, or the current
        arena when none of them is attached yet.
        """
        graph = None
        for tensor in tensors:
            if tensor.graph is None:
                continue
            if graph is None:
                graph = tensor.graph
            elif tensor.graph is not graph:
                raise GraphMismatchError(
                    f"Inputs belong to different graphs: {graph!r} and {tensor.graph!r}"
                )
        if graph is None:
            graph = current_graph()
        if graph.released:
            raise GraphReleasedError(f"{graph.name} has been released")
        return graph


class _ZerosConstructor:
    """
    Descriptor behind `Tensor.zeros`: a static constructor on the class, and
    `Tensor.zeros_like` on an instance.
    """

    def __init__(self, build):
        self.build = build
        self.__doc__ = build.__doc__

    def __get__(self, instance, owner=None):
        if instance is None:
            return self.build
        return instance.zeros_like


class Tensor:
    """
    A `Tensor` is a node in the computation graph.

    It holds a NumPy array it owns exclusively, an optional `History` recording
    which `Function` produced it and from which parents, and a gradient slot.
    """

    def __init__(
        self,
        data: Union[np.ndarray, float, int, Sequence[float], Sequence[Sequence[float]]],
        history: Optional[History] = None,
        graph: Optional[Graph] = None,
        backend: Optional[Backend] = None,
        track: bool = True,
    ):
        """
        Initialize a `Tensor`.

        Args:
            data: The data for this tensor. Always copied into a fresh array of
                the backend's dtype (float32 by default).
            history (Optional[History], optional): How this tensor was produced.
                Defaults to None for a leaf.
            graph (Optional[Graph], optional): The arena that takes ownership of
                this tensor. Defaults to the current arena.
            backend (Optional[Backend], optional): The elementwise backend.
                Defaults to the backend built from the engine config.
            track (bool, optional): When False the tensor is not registered in
                any arena until it is first used as a Function input. Gradient
                slots are created this way. Defaults to True.
        """
        self.backend = backend if backend is not None else default_backend()
        if isinstance(data, Tensor):
            data = data.data
        self.data = self.backend.asarray(data)
        self.history = history
        self._grad: Optional["Tensor"] = None  # Lazily initialized to zeros
        self.graph: Optional[Graph] = None
        self.node_id: Optional[int] = None
        if track:
            self.attach(graph if graph is not None else current_graph())

    def attach(self, graph: Graph) -> None:
        """
        Hand this tensor over to ``graph``.

        Raises:
            ValueError: If the tensor is already owned by an arena.
        """
        if self.graph is not None:
            raise ValueError(f"Tensor already belongs to {self.graph!r}")
        self.node_id = graph.add(self)
        self.graph = graph

    @_ZerosConstructor
    def zeros(
        shape: Tuple[int, ...],
        graph: Optional[Graph] = None,
        backend: Optional[Backend] = None,
    ) -> "Tensor":
        """
        Construct a leaf tensor filled with zeros.

        Called on an instance with no arguments, `zeros` is `zeros_like`:
        ``x.zeros()`` returns zeros shaped like ``x``, in ``x``'s arena.

        Args:
            shape (Tuple[int, ...]): The desired shape.
            graph (Optional[Graph], optional): The owning arena. Defaults to the
                current arena.
            backend (Optional[Backend], optional): Defaults to the config backend.

        Returns:
            Tensor: A zero-filled leaf tensor.
        """
        backend = backend if backend is not None else default_backend()
        return Tensor(backend.zeros(tuple(shape)), graph=graph, backend=backend)

    def zeros_like(self) -> "Tensor":
        """
        Return a zero leaf with this tensor's shape, in this tensor's arena.
        """
        return Tensor.zeros(self.shape, graph=self.graph, backend=self.backend)

    @property
    def shape(self) -> Tuple[int, ...]:
        """
        Return the shape of the underlying data.

        Returns:
            Tuple[int, ...]: The shape of this tensor.
        """
        return self.data.shape

    @property
    def ndim(self) -> int:
        return self.data.ndim

    def info(self) -> TensorDataInfo:
        """
        Return a read-only summary of the underlying buffer.

        Returns:
            TensorDataInfo: shape, dtype, size, strides and byte count.
        """
        return self.backend.info(self.data)

    def parents(self) -> List["Tensor"]:
        """
        Return the tensors this one was computed from, in argument order.

        Returns:
            List[Tensor]: The parents, or an empty list for a leaf.

        Raises:
            GraphReleasedError: If the owning arena was released, or a backward
                pass already ran through this tensor without retaining it.
        """
        if self.history is None:
            return []
        if self.history.ctx.released:
            raise GraphReleasedError(
                f"{self.history.function.__name__} was already backpropagated "
                f"through and its saved values were released; pass "
                f"retain_graph=True to walk a graph more than once"
            )
        return [self.graph.node(index) for index in self.history.parents]

    def is_leaf(self) -> bool:
        return self.history is None or len(self.history.parents) == 0

    @property
    def grad(self) -> "Tensor":
        """
        The accumulated gradient of this tensor.

        It starts at zero and is only ever summed into by `accumulate_grad`.

        Returns:
            Tensor: A tensor with the same shape as this one.
        """
        if self._grad is None:
            self._grad = Tensor(
                self.backend.zeros(self.shape), backend=self.backend, track=False
            )
        return self._grad

    def accumulate_grad(self, delta: Union["Tensor", np.ndarray, float, int]) -> None:
        """
        Add ``delta`` into the gradient slot: ``grad := grad + delta``.

        Each call adds, so a tensor feeding several consumers ends with the sum
        of every incoming gradient. A delta carrying broadcast dimensions is
        summed back down to this tensor's shape first.

        Args:
            delta (Union[Tensor, np.ndarray, float, int]): The gradient to add.

        Raises:
            ShapeError: If ``delta`` cannot be reduced or broadcast to this
                tensor's shape.
        """
        if isinstance(delta, Tensor):
            delta = delta.data
        delta = self.backend.unbroadcast(np.asarray(delta), self.shape)
        try:
            summed = self.backend.add(self.grad.data, delta)
        except ValueError as e:
            raise ShapeError(
                f"Cannot accumulate a gradient of shape {delta.shape} into a tensor "
                f"of shape {self.shape}",
                delta.shape,
                self.shape,
            ) from e
        if summed.shape != self.shape:
            raise ShapeError(
                f"Cannot accumulate a gradient of shape {delta.shape} into a tensor "
                f"of shape {self.shape}",
                delta.shape,
                self.shape,
            )
        self.grad.data = summed.astype(self.backend.dtype, copy=False)

    def zero_grad(self) -> None:
        """Reset the gradient slot to zeros."""
        self._grad = None

    def backward(
        self,
        grad: Optional[Union["Tensor", np.ndarray, float, int]] = None,
        retain_graph: Optional[bool] = None,
    ) -> None:
        """
        Compute gradients for all upstream nodes in the graph via backpropagation.

        1. If `grad` is None, the seed is d(self)/d(self) = 1. This requires a
           single-element tensor, such as an aggregate loss.
        2. The engine orders every reachable node so that each one comes after
           all of its consumers.
        3. It then walks that order once, calling each node's backward with the
           fully summed incoming gradient.

        As a side effect, each ancestor Tensor accumulates its .grad field.

        Args:
            grad (Optional[Union[Tensor, np.ndarray, float, int]]): The gradient
                w.r.t. this tensor. Must have this tensor's shape.
            retain_graph (Optional[bool]): Keep saved contexts so the graph can be
                walked again. Defaults to the engine config.

        Raises:
            NonScalarBackwardError: If no `grad` is given for a tensor with more
                than one element, or `grad` has the wrong shape.
        """
        if retain_graph is None:
            retain_graph = get_config().retain_graph

        if grad is None:
            if self.data.size != 1:
                raise NonScalarBackwardError(self.shape)
            seed = self.backend.ones(self.shape)
        else:
            seed = self.backend.asarray(grad.data if isinstance(grad, Tensor) else grad)
            if seed.shape != self.shape:
                raise NonScalarBackwardError(self.shape, seed.shape)

        backpropagate(self, seed, retain_graph=retain_graph)

    def detach(self) -> "Tensor":
        """
        Return a new leaf with the same data, in the same arena, with no history.
        """
        return Tensor(self.data, graph=self.graph, backend=self.backend)

    def item(self) -> float:
        if self.data.size != 1:
            raise ValueError(
                f"Only single-element tensors can be converted, got shape {self.shape}"
            )
        return float(self.data.reshape(-1)[0])

    def numpy(self) -> np.ndarray:
        return self.backend.identity(self.data)

    def _wrap(self, other: Union["Tensor", np.ndarray, float, int]) -> "Tensor":
        if isinstance(other, Tensor):
            return other
        return Tensor(other, graph=self.graph, backend=self.backend)

    def __add__(self, other: Union["Tensor", float, int]) -> "Tensor":
        """
        Element-wise addition of two tensors (or a tensor and a scalar).

        Args:
            other (Union[Tensor, float, int]): The tensor or scalar to add.

        Returns:
            Tensor: The result of addition.
        """
        return Add.apply(self, self._wrap(other))

    def __mul__(self, other: Union["Tensor", float, int]) -> "Tensor":
        r"""
        Element-wise multiplication of two tensors (or a tensor and a scalar).
        $$
        z = x \cdot y
        $$

        Args:
            other (Union[Tensor, float, int]): The tensor or scalar to multiply with.

        Returns:
            Tensor: The result of multiplication.
        """
        return Mul.apply(self, self._wrap(other))

    def __neg__(self) -> "Tensor":
        return Neg.apply(self)

    def __radd__(self, other: Union["Tensor", float, int]) -> "Tensor":
        return Add.apply(self._wrap(other), self)

    def __rmul__(self, other: Union["Tensor", float, int]) -> "Tensor":
        return Mul.apply(self._wrap(other), self)

    def __sub__(self, other: Union["Tensor", float, int]) -> "Tensor":
        return self + (-self._wrap(other))

    def __rsub__(self, other: Union["Tensor", float, int]) -> "Tensor":
        return self._wrap(other) + (-self)

    def __truediv__(self, other: Union["Tensor", float, int]) -> "Tensor":
        return self * self._wrap(other).inv()

    def __rtruediv__(self, other: Union["Tensor", float, int]) -> "Tensor":
        return self._wrap(other) * self.inv()

    def __lt__(self, other: Union["Tensor", float, int]) -> "Tensor":
        return Lt.apply(self, self._wrap(other))

    def __gt__(self, other: Union["Tensor", float, int]) -> "Tensor":
        return Lt.apply(self._wrap(other), self)

    def __eq__(self, other: Union["Tensor", float, int]) -> "Tensor":  # type: ignore[override]
        return Eq.apply(self, self._wrap(other))

    def __hash__(self) -> int:
        # Hash is based on the id of the tensor object
        return id(self)

    def __bool__(self) -> bool:
        if self.data.size != 1:
            raise ValueError(
                "The truth value of a tensor with more than one element is ambiguous"
            )
        return bool(self.data.reshape(-1)[0])

    def inv(self) -> "Tensor":
        r"""
        Element-wise reciprocal $z = \frac{1}{x}$.
        """
        return Inv.apply(self)

    def log(self) -> "Tensor":
        """
        Element-wise natural logarithm. Only defined for positive inputs.
        """
        return Log.apply(self)

    def exp(self) -> "Tensor":
        return Exp.apply(self)

    def copy(self) -> "Tensor":
        """
        Identity with a fresh buffer. The gradient passes through unchanged.
        """
        return Copy.apply(self)

    def is_close(self, other: Union["Tensor", float, int]) -> "Tensor":
        """
        Element-wise approximate equality (0/1). The result is a leaf: no
        gradient flows back through it.
        """
        return IsClose.apply(self, self._wrap(other))

    def __repr__(self) -> str:
        """
        Return a string representation of the tensor, showing its data and gradient.
        """
        grad = None if self._grad is None else self._grad.data
        return f"Tensor(data={self.data}, grad={grad})"


"""
Binary Ops
"""


class Add(Function):
    """Element-wise addition of two tensors.
    See :func:`babygrad.tensor.Tensor.__add__` function
    """

    arity = 2
    differentiable = (True, True)

    @staticmethod
    def forward(ctx: Context, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return ctx.backend.add(x, y)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Compute the gradient for the addition operation.

        Since addition is linear, the gradient with respect to both inputs is the
        same as the incoming gradient.

        Args:
            ctx (Context): Unused, addition saves nothing.
            grad (np.ndarray): The gradient of the loss with respect to the output.

        Returns:
            Tuple[np.ndarray, np.ndarray]: The gradients with respect to ``x`` and ``y``.
        """
        return grad, grad


class Mul(Function):
    """Element-wise multiplication of two tensors.
    See :func:`babygrad.tensor.Tensor.__mul__` function
    """

    arity = 2
    differentiable = (True, True)

    @staticmethod
    def forward(ctx: Context, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        ctx.save_for_backwards(x, y)
        return ctx.backend.mul(x, y)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        r"""Compute the gradient for the multiplication operation.

        The gradients are computed as:

            $$
            \begin{align}
            \frac{\partial z}{\partial x} = y \\
            \frac{\partial z}{\partial y} = x
            \end{align}
            $$

        and then multiplied by the incoming gradient.

        Args:
            ctx (Context): Holds ``x`` and ``y``.
            grad (np.ndarray): The gradient of the loss with respect to the output.

        Returns:
            Tuple[np.ndarray, np.ndarray]: The gradients with respect to ``x`` and ``y``.
        """
        x, y = ctx.saved(0), ctx.saved(1)
        return ctx.backend.mul(y, grad), ctx.backend.mul(x, grad)


class Lt(Function):
    """Element-wise ``x < y`` as 0/1. Not differentiable: both gradients are zero.
    See :func:`babygrad.tensor.Tensor.__lt__` function
    """

    arity = 2
    differentiable = (False, False)

    @staticmethod
    def forward(ctx: Context, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return ctx.backend.lt(x, y)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        return ctx.backend.zeros(grad.shape), ctx.backend.zeros(grad.shape)


class Eq(Function):
    """Element-wise ``x == y`` as 0/1. Not differentiable: both gradients are zero.
    See :func:`babygrad.tensor.Tensor.__eq__` function
    """

    arity = 2
    differentiable = (False, False)

    @staticmethod
    def forward(ctx: Context, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return ctx.backend.eq(x, y)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        return ctx.backend.zeros(grad.shape), ctx.backend.zeros(grad.shape)


class IsClose(Function):
    """Element-wise approximate equality as 0/1.

    This is a terminal operation: it has no backward pass, and `Function.apply`
    returns its output as a leaf.
    See :func:`babygrad.tensor.Tensor.is_close` function
    """

    arity = 2
    differentiable = (False, False)
    terminal = True

    @staticmethod
    def forward(ctx: Context, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        ctx.save_for_backwards(x, y)
        return ctx.backend.is_close(x, y)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        raise NonDifferentiableError("IsClose")


"""
Unary Ops
"""


class Neg(Function):
    """Element-wise negation.
    See :func:`babygrad.tensor.Tensor.__neg__` function
    """

    @staticmethod
    def forward(ctx: Context, x: np.ndarray) -> np.ndarray:
        ctx.save_for_backwards(x)
        return ctx.backend.neg(x)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray]:
        return (ctx.backend.neg(grad),)


class Inv(Function):
    """Element-wise reciprocal.
    See :func:`babygrad.tensor.Tensor.inv` function
    """

    @staticmethod
    def forward(ctx: Context, x: np.ndarray) -> np.ndarray:
        ctx.save_for_backwards(x)
        return ctx.backend.inv(x)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray]:
        r"""Compute the gradient for the reciprocal.

            $$
            \frac{d}{dx}\frac{1}{x} = -\frac{1}{x^2}
            $$

        Args:
            ctx (Context): Holds ``x``.
            grad (np.ndarray): The gradient of the loss with respect to the output.

        Returns:
            Tuple[np.ndarray]: The gradient with respect to ``x``.
        """
        return (ctx.backend.inv_backward(ctx.saved(0), grad),)


class Log(Function):
    """Element-wise natural logarithm.
    See :func:`babygrad.tensor.Tensor.log` function
    """

    @staticmethod
    def forward(ctx: Context, x: np.ndarray) -> np.ndarray:
        ctx.save_for_backwards(x)
        return ctx.backend.log(x)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray]:
        return (ctx.backend.log_backward(ctx.saved(0), grad),)


class Exp(Function):
    """Element-wise exponential.
    See :func:`babygrad.tensor.Tensor.exp` function
    """

    @staticmethod
    def forward(ctx: Context, x: np.ndarray) -> np.ndarray:
        ctx.save_for_backwards(x)
        return ctx.backend.exp(x)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray]:
        return (ctx.backend.mul(grad, ctx.backend.exp(ctx.saved(0))),)


class Copy(Function):
    """Identity into a fresh buffer.
    See :func:`babygrad.tensor.Tensor.copy` function
    """

    @staticmethod
    def forward(ctx: Context, x: np.ndarray) -> np.ndarray:
        return ctx.backend.identity(x)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray]:
        return (grad,)
