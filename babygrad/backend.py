import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from babygrad.config import get_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TensorDataInfo:
    """
    Read-only summary of a tensor's underlying buffer, for diagnostics.
    """

    shape: Tuple[int, ...]
    dtype: str
    size: int
    strides: Tuple[int, ...]
    nbytes: int


class Backend(ABC):
    """
    Elementwise-operation capability consumed by the autograd core.

    Every method takes one or two arrays and returns a new array. Broadcasting
    and shape-mismatch failures are the backend's concern.
    """

    def __init__(self, dtype: str = "float32"):
        self.dtype = np.dtype(dtype)

    def asarray(self, data) -> np.ndarray:
        # always a fresh buffer, so every Tensor owns its data
        return np.array(data, dtype=self.dtype, copy=True)

    def zeros(self, shape: Tuple[int, ...]) -> np.ndarray:
        return np.zeros(shape, dtype=self.dtype)

    def ones(self, shape: Tuple[int, ...]) -> np.ndarray:
        return np.ones(shape, dtype=self.dtype)

    @staticmethod
    def unbroadcast(grad_arr: np.ndarray, to_shape: Tuple[int, ...]) -> np.ndarray:
        """
        Sum out broadcasted dimensions so that grad_arr can match to_shape.
        Essentially the inverse of numpy's broadcasting.

        Args:
            grad_arr (np.ndarray): Gradient array to unbroadcast.
            to_shape (Tuple[int, ...]): Shape to unbroadcast to.

        Returns:
            np.ndarray: Unbroadcasted gradient array. Arrays with fewer dimensions
            than ``to_shape`` are returned unchanged.
        """
        if grad_arr.shape == to_shape:
            # No broadcasting happened
            return grad_arr

        # e.g. grad_arr.shape might be (4,3,2) but to_shape is (1,3,2).
        # 1) sum across extra leading dims
        while grad_arr.ndim > len(to_shape):
            grad_arr = grad_arr.sum(axis=0, keepdims=False)

        # 2) sum out every dim that was 1 in to_shape
        if grad_arr.ndim == len(to_shape):
            for dim, size in enumerate(to_shape):
                if size == 1 and grad_arr.shape[dim] != 1:
                    grad_arr = grad_arr.sum(axis=dim, keepdims=True)

        return grad_arr

    def info(self, data: np.ndarray) -> TensorDataInfo:
        return TensorDataInfo(
            shape=tuple(data.shape),
            dtype=str(data.dtype),
            size=int(data.size),
            strides=tuple(data.strides),
            nbytes=int(data.nbytes),
        )

    @abstractmethod
    def add(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def mul(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def neg(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def inv(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def inv_backward(self, x: np.ndarray, grad: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def relu(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def relu_backward(self, x: np.ndarray, grad: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def sigmoid(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def log(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def log_backward(self, x: np.ndarray, grad: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def exp(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def lt(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def eq(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def is_close(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def identity(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class NumpyBackend(Backend):
    r"""
    Default backend over ``numpy.ndarray`` buffers.

    Comparisons return 0/1 arrays in the backend dtype so they can flow back
    into arithmetic. ``is_close`` uses an absolute tolerance:

        $$
        is\_close(x, y) = |x - y| < tol
        $$
    """

    def __init__(self, dtype: str = "float32", is_close_tol: float = 1e-2):
        super().__init__(dtype=dtype)
        self.is_close_tol = is_close_tol

    def add(self, x, y):
        return np.add(x, y)

    def mul(self, x, y):
        return np.multiply(x, y)

    def neg(self, x):
        return np.negative(x)

    def inv(self, x):
        return np.reciprocal(x)

    def inv_backward(self, x, grad):
        # d(1/x)/dx = -1/x^2
        return -grad / (x * x)

    def relu(self, x):
        return np.maximum(x, 0).astype(x.dtype, copy=False)

    def relu_backward(self, x, grad):
        return grad * (x > 0)

    def sigmoid(self, x):
        # exp of a non-positive argument never overflows
        z = np.exp(-np.abs(x))
        return np.where(x >= 0, 1.0 / (1.0 + z), z / (1.0 + z)).astype(
            x.dtype, copy=False
        )

    def log(self, x):
        return np.log(x)

    def log_backward(self, x, grad):
        return grad / x

    def exp(self, x):
        return np.exp(x)

    def lt(self, x, y):
        return np.less(x, y).astype(self.dtype)

    def eq(self, x, y):
        return np.equal(x, y).astype(self.dtype)

    def is_close(self, x, y):
        return (np.abs(np.subtract(x, y)) < self.is_close_tol).astype(self.dtype)

    def identity(self, x):
        return np.array(x, copy=True)


_backends: Dict[Tuple[str, float], NumpyBackend] = {}


def default_backend() -> NumpyBackend:
    """
    Return the NumPy backend matching the current engine config, building it
    the first time a given dtype/tolerance pair is requested.
    """
    config = get_config()
    key = (config.dtype, config.is_close_tol)
    if key not in _backends:
        logger.debug(f"Creating NumpyBackend(dtype={key[0]}, is_close_tol={key[1]})")
        _backends[key] = NumpyBackend(
            dtype=config.dtype, is_close_tol=config.is_close_tol
        )
    return _backends[key]
