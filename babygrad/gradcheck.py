"""
Finite-difference gradient checking for elementwise Functions.

Because every Function in babygrad is elementwise, each output element only
depends on the input element at the same position. That lets the central
difference be taken for all elements at once by perturbing the whole input
array, instead of one element at a time.
"""

import logging
from typing import Callable, Optional, Tuple, Type

import numpy as np

from babygrad.backend import NumpyBackend
from babygrad.config import GradcheckConfig
from babygrad.graph import Graph
from babygrad.tensor import Function, Tensor

logger = logging.getLogger(__name__)


def central_difference(
    fn: Callable[[np.ndarray], np.ndarray], x: np.ndarray, eps: float = 1e-3
) -> np.ndarray:
    r"""
    Estimate the elementwise derivative of ``fn`` at ``x``:

        $$
        f'(x) \approx \frac{f(x + \epsilon) - f(x - \epsilon)}{2 \epsilon}
        $$

    Args:
        fn (Callable[[np.ndarray], np.ndarray]): An elementwise function.
        x (np.ndarray): Where to evaluate the derivative.
        eps (float, optional): Step size. Defaults to 1e-3.

    Returns:
        np.ndarray: The estimate, computed in float64.
    """
    x = np.asarray(x, dtype=np.float64)
    return (np.asarray(fn(x + eps)) - np.asarray(fn(x - eps))) / (2.0 * eps)


def check_gradient(
    function_cls: Type[Function],
    *values,
    config: Optional[GradcheckConfig] = None,
) -> Tuple[np.ndarray, ...]:
    """
    Compare ``function_cls``'s backward pass against central differences.

    The analytic gradient goes through the real engine: the Function is
    applied to leaf tensors and ``backward`` is called on the result with an
    all-ones seed.

    Args:
        function_cls (Type[Function]): The Function to check.
        *values: One array-like per input, all of the same shape, inside the
            Function's domain (e.g. positive for Log).
        config (Optional[GradcheckConfig], optional): Step size, tolerances and
            dtype. Defaults to `GradcheckConfig()`.

    Returns:
        Tuple[np.ndarray, ...]: The analytic gradient for each input.

    Raises:
        AssertionError: If any analytic gradient differs from its estimate.
    """
    config = config if config is not None else GradcheckConfig()
    backend = NumpyBackend(dtype=config.dtype)
    arrays = [backend.asarray(v) for v in values]

    with Graph(name=f"gradcheck-{function_cls.__name__}"):
        inputs = [Tensor(a, backend=backend) for a in arrays]
        out = function_cls.apply(*inputs)
        out.backward(backend.ones(out.shape))
        analytic = tuple(t.grad.numpy() for t in inputs)

    for position, grad in enumerate(analytic):

        def evaluate(perturbed: np.ndarray, position: int = position) -> np.ndarray:
            with Graph(name=f"gradcheck-{function_cls.__name__}-eval"):
                args = list(arrays)
                args[position] = perturbed
                tensors = [Tensor(a, backend=backend) for a in args]
                return function_cls.apply(*tensors).data

        numeric = central_difference(evaluate, arrays[position], eps=config.eps)
        logger.debug(
            f"{function_cls.__name__} input {position}: "
            f"max abs error {np.max(np.abs(grad - numeric)):.3e}"
        )
        np.testing.assert_allclose(
            grad,
            numeric,
            rtol=config.rtol,
            atol=config.atol,
            err_msg=f"{function_cls.__name__} gradient w.r.t. input {position}",
        )

    return analytic
