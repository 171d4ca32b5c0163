"""JAX initialization shared by every residual kernel.

Importing this module enables float64 before any array is created, so that
kernels and their Jacobians are evaluated in double precision like the solver.

Usage:
    from bundlecosts.jax_init import jax, jnp
"""

import jax

jax.config.update("jax_enable_x64", True)

import jax.numpy as jnp  # noqa: E402

__all__ = ["jax", "jnp"]
