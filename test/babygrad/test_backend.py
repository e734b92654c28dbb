import logging
import os
from unittest import TestCase
from unittest.mock import patch

import numpy as np

from babygrad.backend import Backend, NumpyBackend, default_backend
from babygrad.config import EngineConfig, get_config, set_config
from babygrad.logger import ColorFormatter, setup_logger
from babygrad.tensor import Tensor


class TestNumpyBackend(TestCase):
    def setUp(self) -> None:
        self.backend = NumpyBackend()
        self.x = np.array([-1.0, 0.0, 2.0], dtype=np.float32)

    def test_is_a_backend(self):
        assert isinstance(self.backend, Backend)

    def test_asarray_copies(self):
        source = np.array([1.0, 2.0])
        out = self.backend.asarray(source)
        assert out.dtype == np.float32
        assert not np.shares_memory(out, source)

    def test_unbroadcast(self):
        grad = np.ones((4, 3, 2))
        assert self.backend.unbroadcast(grad, (1, 3, 2)).shape == (1, 3, 2)
        assert self.backend.unbroadcast(grad, (3, 2)).shape == (3, 2)
        assert self.backend.unbroadcast(grad, (3, 1)).shape == (3, 1)
        np.testing.assert_allclose(self.backend.unbroadcast(grad, (2,)), [12.0, 12.0])
        # fewer dimensions than the target: left as is
        assert self.backend.unbroadcast(np.ones(()), (2,)).shape == ()

    def test_relu_backward(self):
        grad = np.array([5.0, 5.0, 5.0], dtype=np.float32)
        np.testing.assert_array_equal(self.backend.relu_backward(self.x, grad), [0, 0, 5])

    def test_inv_backward(self):
        grad = np.ones(1, dtype=np.float32)
        np.testing.assert_allclose(
            self.backend.inv_backward(np.array([2.0], dtype=np.float32), grad), [-0.25]
        )

    def test_log_backward(self):
        grad = np.array([3.0], dtype=np.float32)
        np.testing.assert_allclose(
            self.backend.log_backward(np.array([2.0], dtype=np.float32), grad), [1.5]
        )

    def test_comparisons_are_numeric(self):
        y = np.array([0.0, 0.0, 0.0], dtype=np.float32)
        lt = self.backend.lt(self.x, y)
        eq = self.backend.eq(self.x, y)
        assert lt.dtype == np.float32
        np.testing.assert_array_equal(lt, [1.0, 0.0, 0.0])
        np.testing.assert_array_equal(eq, [0.0, 1.0, 0.0])

    def test_is_close_tolerance(self):
        strict = NumpyBackend(is_close_tol=1e-6)
        x = np.array([1.0], dtype=np.float32)
        y = np.array([1.001], dtype=np.float32)
        assert self.backend.is_close(x, y)[0] == 1.0
        assert strict.is_close(x, y)[0] == 0.0

    def test_identity_is_a_copy(self):
        out = self.backend.identity(self.x)
        np.testing.assert_array_equal(out, self.x)
        assert not np.shares_memory(out, self.x)

    def test_info(self):
        info = self.backend.info(np.zeros((2, 3), dtype=np.float32))
        assert info.shape == (2, 3)
        assert info.strides == (12, 4)
        assert info.nbytes == 24


class TestConfig(TestCase):
    def test_defaults(self):
        config = get_config()
        assert config.dtype == "float32"
        assert config.is_close_tol == 1e-2
        assert config.retain_graph is False

    def test_dtype_from_config(self):
        set_config(EngineConfig(dtype="float64"))
        x = Tensor([1.0, 2.0])
        assert x.data.dtype == np.float64
        assert x.backend is default_backend()
        (x * x).backward(np.ones(2))
        assert x.grad.data.dtype == np.float64

    def test_retain_graph_from_config(self):
        set_config(EngineConfig(retain_graph=True))
        x = Tensor([3.0])
        y = x * x
        y.backward()
        y.backward()
        np.testing.assert_allclose(x.grad.data, [12.0])

    def test_set_config_returns_previous(self):
        first = get_config()
        replacement = EngineConfig(is_close_tol=0.5)
        assert set_config(replacement) is first
        assert get_config() is replacement
        assert default_backend().is_close_tol == 0.5


class TestLogger(TestCase):
    def tearDown(self) -> None:
        logging.getLogger("babygrad-test").handlers.clear()

    def test_setup_logger_levels(self):
        with patch.dict(os.environ, {"DEBUG": "1"}):
            assert setup_logger("babygrad-test").level == logging.DEBUG
        with patch.dict(os.environ, {}, clear=True):
            assert setup_logger("babygrad-test").level == logging.INFO

    def test_no_duplicate_handlers(self):
        logger = setup_logger("babygrad-test")
        setup_logger("babygrad-test")
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, ColorFormatter)

    def test_backward_logs_node_count(self):
        with self.assertLogs("babygrad.engine", level="DEBUG") as logs:
            x = Tensor([1.0])
            (x * x).backward()
        assert any("Backward pass over 2 node(s)" in line for line in logs.output)

    def test_color_formatter(self):
        record = logging.LogRecord("babygrad", logging.WARNING, "", 0, "hello", None, None)
        formatted = ColorFormatter().format(record)
        assert "hello" in formatted
        assert formatted.startswith(ColorFormatter.yellow)
        assert formatted.endswith(ColorFormatter.reset)
