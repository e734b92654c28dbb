import logging
from typing import Tuple, Union

import numpy as np

from babygrad.tensor import (
    Add,
    Context,
    Copy,
    Eq,
    Exp,
    Function,
    Inv,
    IsClose,
    Log,
    Lt,
    Mul,
    Neg,
    Tensor,
)

logger = logging.getLogger(__name__)

Operand = Union[Tensor, float, int]


def _as_tensor(x: Operand, like: Tensor) -> Tensor:
    if isinstance(x, Tensor):
        return x
    return Tensor(x, graph=like.graph, backend=like.backend)


########### Activation Functions ###############
def relu(x: Tensor) -> Tensor:
    """
    Applies the Rectified Linear Unit (ReLU) activation function.

    Args:
        x (Tensor): The input tensor.

    Returns:
        Tensor: The tensor after applying the ReLU function.
    """
    return Relu.apply(x)


def sigmoid(x: Tensor) -> Tensor:
    """
    Applies the sigmoid activation function.

    Args:
        x (Tensor): The input tensor.

    Returns:
        Tensor: The tensor after applying the sigmoid function.
    """
    return Sigmoid.apply(x)


class Relu(Function):
    """
    Rectified Linear Unit (ReLU) activation function.

    The ReLU function is defined as:
        $$
        ReLU(x) = max(0, x)
        $$

    Methods:
        forward: Computes the forward pass.
        backward: Computes the gradient with respect to the input.
    """

    @staticmethod
    def forward(ctx: Context, x: np.ndarray) -> np.ndarray:
        """
        Computes the forward pass of the ReLU activation function.

        Args:
            ctx (Context): Saves ``x`` for the backward mask.
            x (np.ndarray): Input array.

        Returns:
            np.ndarray: The result of applying ReLU to the input.
        """
        ctx.save_for_backwards(x)
        return ctx.backend.relu(x)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray]:
        """
        Computes the backward pass of the ReLU activation function.

        The upstream gradient passes through where the input was positive and
        is zeroed elsewhere, including at exactly zero.

        Args:
            ctx (Context): Holds the forward input.
            grad (np.ndarray): Upstream gradient.

        Returns:
            Tuple[np.ndarray]: The gradient of the loss with respect to the input.
        """
        return (ctx.backend.relu_backward(ctx.saved(0), grad),)


class Sigmoid(Function):
    r"""
    Sigmoid activation function.

    The sigmoid function is defined as:
        $$
        \sigma(x) = \frac{1}{1 + e^{-x}}
        $$
    """

    @staticmethod
    def forward(ctx: Context, x: np.ndarray) -> np.ndarray:
        ctx.save_for_backwards(x)
        return ctx.backend.sigmoid(x)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray) -> Tuple[np.ndarray]:
        r"""
        Computes the backward pass of the sigmoid from the saved input:

            $$
            \frac{d\sigma}{dx} = \sigma(x)(1 - \sigma(x)) = \sigma(x) \sigma(-x)
            $$

        Both factors come from the stable forward kernel, so the gradient stays
        finite for inputs far out in either tail.

        Args:
            ctx (Context): Holds the forward input.
            grad (np.ndarray): Upstream gradient.

        Returns:
            Tuple[np.ndarray]: The gradient of the loss with respect to the input.
        """
        backend = ctx.backend
        x = ctx.saved(0)
        local_grad = backend.mul(backend.sigmoid(x), backend.sigmoid(backend.neg(x)))
        return (backend.mul(grad, local_grad),)


########### Elementwise Functions ###############
def add(x: Tensor, y: Operand) -> Tensor:
    return Add.apply(x, _as_tensor(y, x))


def mul(x: Tensor, y: Operand) -> Tensor:
    return Mul.apply(x, _as_tensor(y, x))


def neg(x: Tensor) -> Tensor:
    return Neg.apply(x)


def inv(x: Tensor) -> Tensor:
    return Inv.apply(x)


def log(x: Tensor) -> Tensor:
    return Log.apply(x)


def exp(x: Tensor) -> Tensor:
    return Exp.apply(x)


def copy(x: Tensor) -> Tensor:
    return Copy.apply(x)


def lt(x: Tensor, y: Operand) -> Tensor:
    """
    Element-wise ``x < y`` as 0/1. Gradients through it are always zero.
    """
    return Lt.apply(x, _as_tensor(y, x))


def eq(x: Tensor, y: Operand) -> Tensor:
    """
    Element-wise ``x == y`` as 0/1. Gradients through it are always zero.
    """
    return Eq.apply(x, _as_tensor(y, x))


def is_close(x: Tensor, y: Operand) -> Tensor:
    """
    Element-wise approximate equality as 0/1. The result is a leaf.
    """
    return IsClose.apply(x, _as_tensor(y, x))
