"""bundlecosts: differentiable bundle adjustment cost functions for pyceres."""

__version__ = "0.1.0"
