"""
Special functions that can be used inside of (differentiable) jax code.

jax itself does not provide Bessel functions of the first kind for
arbitrary real arguments, so we call the ones from ``scipy.special``
through a callback and provide the derivatives as custom JVP rules.
Because the derivatives are again expressed through `j0()` and `j1()`,
forward-mode derivatives of arbitrary order are available.
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from typing import Any, Callable, Tuple

from scipy import special

import jax
import jax.numpy as jnp
import numpy as np


# -----------------------------------------------------------------------------
# AUXILIARY FUNCTION DEFINITIONS
# -----------------------------------------------------------------------------

def _scipy_callback(
    function: Callable[[np.ndarray], np.ndarray],
    z: Any,
) -> Any:
    """
    Evaluate a (vectorized) scipy function on `z` via a jax callback.
    Non-floating point inputs are promoted to float64.
    """

    z = jnp.asarray(z)
    if not jnp.issubdtype(z.dtype, jnp.floating):
        z = z.astype(jnp.float64)
    dtype = z.dtype

    return jax.pure_callback(
        lambda _: np.asarray(function(_), dtype=dtype),
        jax.ShapeDtypeStruct(z.shape, dtype),
        z,
        vmap_method='broadcast_all',
    )


# -----------------------------------------------------------------------------
# FUNCTION DEFINITIONS
# -----------------------------------------------------------------------------

@jax.custom_jvp
def j0(z: Any) -> Any:
    """
    Bessel function of the first kind of order 0.
    """
    return _scipy_callback(special.j0, z)


@jax.custom_jvp
def j1(z: Any) -> Any:
    """
    Bessel function of the first kind of order 1.
    """
    return _scipy_callback(special.j1, z)


@j0.defjvp
def _j0_jvp(primals: Tuple[Any], tangents: Tuple[Any]) -> Tuple[Any, Any]:
    (z,), (z_dot,) = primals, tangents
    return j0(z), -j1(z) * z_dot


@j1.defjvp
def _j1_jvp(primals: Tuple[Any], tangents: Tuple[Any]) -> Tuple[Any, Any]:
    (z,), (z_dot,) = primals, tangents

    # J1'(z) = J0(z) - J1(z) / z, with the limit J1'(0) = 1/2. The inner
    # where() keeps the unused branch finite so that it does not produce
    # NaNs in higher-order derivatives.
    at_zero = z == 0
    z_safe = jnp.where(at_zero, 1.0, z)
    derivative = jnp.where(at_zero, 0.5, j0(z_safe) - j1(z_safe) / z_safe)

    return j1(z), derivative * z_dot
