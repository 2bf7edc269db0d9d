"""
Additional custom types that can be used for type hinting.
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from typing import Any, Protocol


# -----------------------------------------------------------------------------
# TYPE DEFINITIONS
# -----------------------------------------------------------------------------

class PSFFunction(Protocol):
    """
    Define a type hint for the functional form of a PSF model, that is,
    a function that takes the coordinates `(px, py)` of one or more
    points as well as the model parameters as keyword arguments, and
    returns the value(s) of the model at these points; for example,
    :func:`lazypsf.functions.gaussian`.
    """

    # pylint: disable=missing-function-docstring
    def __call__(self, px: Any, py: Any, **params: Any) -> Any:
        ...  # pragma: no cover


class LossFunction(Protocol):
    """
    Define a type hint for a per-residual loss, that is, an element-wise
    function (such as `jnp.square` or `jnp.abs`) that maps the residuals
    between a model and the data onto their contribution to the loss.
    """

    # pylint: disable=missing-function-docstring
    def __call__(self, residuals: Any) -> Any:
        ...  # pragma: no cover
