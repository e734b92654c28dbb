"""
This module contains the configuration schema for the autograd engine and the
gradient checker. It's optional to use; the defaults are what every Tensor
gets when nothing is configured.
"""

import os
from dataclasses import dataclass


@dataclass
class EngineConfig:
    """
    Process-wide settings for tensor construction and backward passes.
    """

    # dtype of every buffer created by the default backend
    dtype: str = os.getenv("BABYGRAD_DTYPE", "float32")
    # absolute tolerance used by IsClose
    is_close_tol: float = 1e-2
    # keep saved Contexts alive after backward so the graph can be walked again
    retain_graph: bool = False


@dataclass
class GradcheckConfig:
    """
    Settings for the central finite-difference gradient checker in
    `babygrad.gradcheck`.
    """

    eps: float = 1e-3
    rtol: float = 1e-2
    atol: float = 1e-3
    # finite differences in float32 are too noisy to compare against
    dtype: str = "float64"


_config = EngineConfig()


def get_config() -> EngineConfig:
    return _config


def set_config(config: EngineConfig) -> EngineConfig:
    """
    Replace the process-wide engine config and return the previous one.

    Tensors created afterwards pick up the new dtype and tolerance; existing
    tensors keep the backend they were built with.
    """
    global _config
    previous = _config
    _config = config
    return previous
