from unittest import TestCase

import numpy as np
import torch  # for comparison

from babygrad import functional
from babygrad.engine import backpropagate, topological_order
from babygrad.errors import (
    ArityError,
    GraphReleasedError,
    NonDifferentiableError,
    UnsavedContextError,
)
from babygrad.tensor import Context, Function, Tensor


class CountingCopy(Function):
    """Identity that records how many times its backward runs."""

    calls = []

    @staticmethod
    def forward(ctx: Context, x: np.ndarray) -> np.ndarray:
        return ctx.backend.identity(x)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray):
        CountingCopy.calls.append(grad.copy())
        return (grad,)


class BrokenArity(Function):
    """Binary function whose backward forgets the second gradient."""

    arity = 2
    differentiable = (True, True)

    @staticmethod
    def forward(ctx: Context, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return ctx.backend.add(x, y)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray):
        return (grad,)


class ReadsUnsaved(Function):
    """Unary function that reads a saved value it never wrote."""

    @staticmethod
    def forward(ctx: Context, x: np.ndarray) -> np.ndarray:
        return ctx.backend.identity(x)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray):
        return (ctx.saved(0),)


class LeakyLt(Function):
    """Comparison whose backward wrongly passes the gradient through."""

    arity = 2
    differentiable = (False, False)

    @staticmethod
    def forward(ctx: Context, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return ctx.backend.lt(x, y)

    @staticmethod
    def backward(ctx: Context, grad: np.ndarray):
        return grad, grad


class TestTopologicalOrder(TestCase):
    def test_leaf_root(self):
        x = Tensor([1.0])
        order = topological_order(x)
        assert len(order) == 1
        assert order[0] is x

    def test_consumers_come_before_producers(self):
        x = Tensor([1.0])
        a = x.exp()
        b = x * 2.0
        c = a + b
        d = c * a
        order = topological_order(d)
        position = {id(t): i for i, t in enumerate(order)}

        assert order[0] is d
        assert len(order) == len({id(t) for t in order})
        for node in order:
            for parent in node.parents():
                assert position[id(node)] < position[id(parent)]

    def test_shared_node_visited_once(self):
        x = Tensor([1.0])
        y = x * x
        order = topological_order(y)
        assert len(order) == 2
        assert order[0] is y
        assert order[1] is x

    def test_deep_chain_does_not_recurse(self):
        x = Tensor([1.0])
        y = x
        for _ in range(5000):
            y = y.copy()
        order = topological_order(y)
        assert len(order) == 5001
        assert order[-1] is x


class TestBackpropagate(TestCase):
    def setUp(self) -> None:
        CountingCopy.calls = []

    def test_diamond_runs_shared_backward_once(self):
        x = Tensor([3.0])
        shared = CountingCopy.apply(x)
        y = shared.exp() + shared * shared
        y.backward()

        assert len(CountingCopy.calls) == 1
        # the shared node saw the fully summed gradient: e^x + 2x
        np.testing.assert_allclose(CountingCopy.calls[0], [np.exp(3.0) + 6.0], rtol=1e-5)
        np.testing.assert_allclose(x.grad.data, [np.exp(3.0) + 6.0], rtol=1e-5)

    def test_diamond_equals_sum_of_branches(self):
        values = [0.3, 1.2, 2.5]

        def f(t):
            return t.exp()

        def g(t):
            return functional.sigmoid(t) * t

        x = Tensor(values)
        (f(x) + g(x)).backward(np.ones(3))

        x_f = Tensor(values)
        f(x_f).backward(np.ones(3))
        x_g = Tensor(values)
        g(x_g).backward(np.ones(3))

        np.testing.assert_allclose(x.grad.data, x_f.grad.data + x_g.grad.data, rtol=1e-6)

    def test_matches_torch_on_shared_graph(self):
        values = [0.5, 1.0, 1.5]
        x = Tensor(values)
        h = x.log() * x
        out = h * h + h.exp() - functional.relu(h - 0.2)
        out.backward(np.ones(3))

        x_torch = torch.tensor(values, requires_grad=True)
        h_torch = x_torch.log() * x_torch
        out_torch = h_torch * h_torch + h_torch.exp() - torch.relu(h_torch - 0.2)
        out_torch.backward(torch.ones_like(out_torch))

        np.testing.assert_allclose(out.data, out_torch.detach().numpy(), rtol=1e-5)
        np.testing.assert_allclose(x.grad.data, x_torch.grad.numpy(), rtol=1e-4)

    def test_every_node_gets_its_gradient(self):
        x = Tensor([2.0])
        y = x * 3.0
        z = y * y
        z.backward()
        np.testing.assert_allclose(z.grad.data, [1.0])
        np.testing.assert_allclose(y.grad.data, [12.0])
        np.testing.assert_allclose(x.grad.data, [36.0])

    def test_broadcast_parent_gradient_is_reduced(self):
        w = Tensor([2.0])
        x = Tensor([1.0, 2.0, 3.0])
        (w * x).backward(np.ones(3))
        np.testing.assert_allclose(w.grad.data, [6.0])
        np.testing.assert_allclose(x.grad.data, [2.0, 2.0, 2.0])

    def test_contexts_released_after_backward(self):
        x = Tensor([2.0])
        y = x * x
        y.backward()
        assert y.history.ctx.released
        with self.assertRaises(GraphReleasedError):
            y.backward()

    def test_retain_graph(self):
        x = Tensor([2.0])
        y = x * x
        y.backward(retain_graph=True)
        y.backward()
        np.testing.assert_allclose(x.grad.data, [8.0])

    def test_backward_arity_is_checked(self):
        x = Tensor([1.0])
        y = Tensor([2.0])
        with self.assertRaises(ArityError):
            BrokenArity.apply(x, y).backward()

    def test_unsaved_context_read_is_fatal(self):
        x = Tensor([1.0])
        with self.assertRaises(UnsavedContextError):
            ReadsUnsaved.apply(x).backward()

    def test_backpropagate_with_explicit_seed(self):
        x = Tensor([1.0, 2.0])
        y = x * x
        backpropagate(y, np.array([1.0, 0.5], dtype=np.float32))
        np.testing.assert_allclose(x.grad.data, [2.0, 2.0])

    def test_released_walk_leaves_gradients_untouched(self):
        x = Tensor([1.0])
        z = x * x
        z.exp().backward()
        z_grad = z.grad.numpy()
        x_grad = x.grad.numpy()

        b = z * 3.0
        with self.assertRaises(GraphReleasedError):
            b.backward()
        np.testing.assert_array_equal(b.grad.data, [0.0])
        np.testing.assert_array_equal(z.grad.data, z_grad)
        np.testing.assert_array_equal(x.grad.data, x_grad)

    def test_consumer_built_before_backward_is_rejected(self):
        x = Tensor([1.0])
        z = x * x
        a = z.exp()
        b = z * 3.0
        a.backward()
        z_grad = z.grad.numpy()

        with self.assertRaises(GraphReleasedError):
            b.backward()
        np.testing.assert_array_equal(b.grad.data, [0.0])
        np.testing.assert_array_equal(z.grad.data, z_grad)

    def test_non_differentiable_inputs_must_get_zeros(self):
        x = Tensor([1.0, 2.0])
        y = Tensor([2.0, 2.0])
        with self.assertRaises(NonDifferentiableError) as cm:
            LeakyLt.apply(x, y).backward(np.ones(2))
        assert cm.exception.position == 0

    def test_non_differentiable_inputs_with_zero_gradient_pass(self):
        x = Tensor([1.0, 2.0])
        y = Tensor([2.0, 2.0])
        (functional.lt(x, y) * x).backward(np.ones(2))
        np.testing.assert_allclose(x.grad.data, [1.0, 0.0])
        np.testing.assert_array_equal(y.grad.data, [0.0, 0.0])
