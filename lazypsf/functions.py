"""
Functional forms of the PSF models (Gaussian, Airy disk, Moffat).

All functions share the same calling convention,

    f(px, py, *, fwhm, x=None, y=None, pos=None, amp=1, theta=0, bkg=0)

where `(px, py)` is the point (or a meshgrid of points) at which the
model is evaluated, and the keyword arguments are the model parameters.
The `fwhm` can be a scalar (isotropic model) or a 2-tuple `(fwhm_x,
fwhm_y)` (diagonal model). The rotation angle `theta` is given in
degrees (counter-clockwise) and only affects diagonal models.

The models are unnormalized: the peak value of the kernel is 1, so a
model evaluated at its own center yields `amp + bkg`. Everything is
written with ``jax.numpy``, so the functions can be evaluated for numpy
arrays as well as inside of jax transformations (e.g., `jax.jacfwd`).
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

import math
import warnings

import jax
import jax.numpy as jnp
import numpy as np

from lazypsf.coordinates import (
    Angle,
    IndexDomain,
    get_meshgrid,
    resolve_position,
    to_degrees,
)
from lazypsf.special import j1
from lazypsf.typehinting import PSFFunction


# -----------------------------------------------------------------------------
# CONSTANTS
# -----------------------------------------------------------------------------

# Pre-factor of the exponent of a Gaussian parametrized by its FWHM
GAUSS_PRE = -4 * math.log(2)

# Scaling factor between radius and FWHM for the Airy disk: the first dark
# ring is located at a radius of 1.18677 * FWHM
AIRY_RZ = 1.18677 * math.pi / 3.8317059702075125


# -----------------------------------------------------------------------------
# CLASS DEFINITIONS
# -----------------------------------------------------------------------------

class RotationWarning(UserWarning):
    """
    Warning that is issued when an isotropic model is evaluated with a
    non-zero rotation angle (which has no effect).
    """


# -----------------------------------------------------------------------------
# AUXILIARY FUNCTION DEFINITIONS
# -----------------------------------------------------------------------------

def is_bivariate(fwhm: Any) -> bool:
    """
    Check if the given `fwhm` contains one value per axis (diagonal
    model) or is a scalar (isotropic model).
    """

    # Tuples and lists may contain tracers, which np.ndim() cannot handle
    if isinstance(fwhm, (tuple, list)):
        n_dim, n_elements = 1, len(fwhm)
    else:
        n_dim, n_elements = np.ndim(fwhm), np.size(fwhm)

    if n_dim == 0:
        return False
    if n_dim == 1 and n_elements == 2:
        return True
    raise ValueError('fwhm must be a scalar or have exactly two elements!')


def rotate_point(dx: Any, dy: Any, theta: Angle) -> Tuple[Any, Any]:
    """
    Rotate the offset vector `(dx, dy)` by `-theta` degrees, that is,
    from the frame of the image into the (unrotated) frame of a model
    that is rotated by `theta` degrees counter-clockwise.
    """

    phi = jnp.deg2rad(to_degrees(theta))
    cos_phi = jnp.cos(phi)
    sin_phi = jnp.sin(phi)

    return cos_phi * dx + sin_phi * dy, -sin_phi * dx + cos_phi * dy


def _is_nonzero(theta: Any) -> bool:
    """
    Check if a rotation angle is non-zero. The value of an angle that is
    being traced by jax is unknown, in which case this returns False.
    """

    try:
        return bool(np.any(np.asarray(theta) != 0))
    except (
        jax.errors.ConcretizationTypeError,
        jax.errors.TracerArrayConversionError,
    ):
        return False


def _get_offsets(
    name: str,
    px: Any,
    py: Any,
    x: Optional[Any],
    y: Optional[Any],
    pos: Optional[Sequence[Any]],
    fwhm: Any,
    theta: Angle,
) -> Tuple[Any, Any]:
    """
    Compute the offsets `(dx, dy)` of the point(s) `(px, py)` from the
    center of the model, already rotated into the frame of the model.
    """

    # Find offset from center
    center_x, center_y = resolve_position(x=x, y=y, pos=pos)
    dx = jnp.asarray(px) - center_x
    dy = jnp.asarray(py) - center_y

    # Rotation only makes sense for diagonal models (for theta = 0, the
    # rotation is exactly the identity)
    theta = to_degrees(theta)
    if is_bivariate(fwhm):
        dx, dy = rotate_point(dx, dy, theta)
    elif _is_nonzero(theta):
        warnings.warn(
            f'isotropic {name} is not affected by non-zero rotation '
            f'angle {theta}',
            RotationWarning,
            stacklevel=3,
        )

    return dx, dy


def _scaled_sqdist(dx: Any, dy: Any, fwhm: Any, scale: float) -> Any:
    """
    Compute the squared distance where each axis is weighted by the
    inverse of `scale * fwhm` (for the respective axis).
    """

    if is_bivariate(fwhm):
        fwhm_x, fwhm_y = fwhm
        return (dx / (scale * fwhm_x)) ** 2 + (dy / (scale * fwhm_y)) ** 2
    return (dx ** 2 + dy ** 2) / (scale * fwhm) ** 2


# -----------------------------------------------------------------------------
# MODEL FUNCTIONS
# -----------------------------------------------------------------------------

def gaussian(
    px: Any,
    py: Any,
    *,
    fwhm: Any,
    x: Optional[Any] = None,
    y: Optional[Any] = None,
    pos: Optional[Sequence[Any]] = None,
    amp: Any = 1.0,
    theta: Angle = 0.0,
    bkg: Any = 0.0,
) -> Any:
    """
    An unnormalized bivariate Gaussian:

        f(p) = amp * exp(-4 ln(2) * d2) + bkg

    where `d2 = |p - p0|^2 / fwhm^2` for an isotropic model, and
    `d2 = (dx / fwhm_x)^2 + (dy / fwhm_y)^2` for a diagonal model.

    Args:
        px: The x-coordinate(s) at which to evaluate the model.
        py: The y-coordinate(s) at which to evaluate the model.
        fwhm: The full width at half maximum; a scalar or a 2-tuple.
        x: The x-position of the center of the model.
        y: The y-position of the center of the model.
        pos: Alternatively, the position of the center as a 2-tuple.
        amp: The amplitude (i.e., the peak value above `bkg`).
        theta: The rotation angle in degrees (counter-clockwise).
        bkg: A constant background level.

    Returns:
        The value(s) of the model at `(px, py)`.
    """

    dx, dy = _get_offsets('gaussian', px, py, x, y, pos, fwhm, theta)
    sqdist = _scaled_sqdist(dx, dy, fwhm, 1.0)
    return amp * jnp.exp(GAUSS_PRE * sqdist) + bkg


normal = gaussian


def airydisk(
    px: Any,
    py: Any,
    *,
    fwhm: Any,
    x: Optional[Any] = None,
    y: Optional[Any] = None,
    pos: Optional[Sequence[Any]] = None,
    amp: Any = 1.0,
    theta: Angle = 0.0,
    bkg: Any = 0.0,
    ratio: Any = 0.0,
) -> Any:
    """
    An unnormalized Airy disk, optionally with a central obscuration:

        f(p) = amp * [(2 J1(q) / q - 2 e J1(e q) / q) / (1 - e^2)]^2 + bkg

    where `J1` is the Bessel function of the first kind of order 1,
    `e` is the obscuration `ratio`, and `q = pi * r / (fwhm * AIRY_RZ)`
    with `r` the (axis-weighted) distance from the center. For `e = 0`,
    this reduces to the usual `[2 J1(q) / q]^2`.

    At the center, the function is defined by its limit, `amp + bkg`.

    Args:
        px: The x-coordinate(s) at which to evaluate the model.
        py: The y-coordinate(s) at which to evaluate the model.
        fwhm: The full width at half maximum; a scalar or a 2-tuple.
        x: The x-position of the center of the model.
        y: The y-position of the center of the model.
        pos: Alternatively, the position of the center as a 2-tuple.
        amp: The amplitude (i.e., the peak value above `bkg`).
        theta: The rotation angle in degrees (counter-clockwise).
        bkg: A constant background level.
        ratio: The ratio of the radius of the central obscuration and
            the radius of the aperture; must be in [0, 1).

    Returns:
        The value(s) of the model at `(px, py)`.
    """

    dx, dy = _get_offsets('airydisk', px, py, x, y, pos, fwhm, theta)
    sqdist = _scaled_sqdist(dx, dy, fwhm, AIRY_RZ)

    # Replace the center by a dummy value so that neither the values nor
    # the derivatives pick up the singularity at r = 0
    at_center = sqdist == 0
    q = jnp.pi * jnp.sqrt(jnp.where(at_center, 1.0, sqdist))

    # Field of the full aperture minus the field of the obscuration
    field = 2 * j1(q) / q - 2 * ratio * j1(ratio * q) / q
    kernel = (field / (1 - ratio ** 2)) ** 2

    return amp * jnp.where(at_center, 1.0, kernel) + bkg


def moffat(
    px: Any,
    py: Any,
    *,
    fwhm: Any,
    x: Optional[Any] = None,
    y: Optional[Any] = None,
    pos: Optional[Sequence[Any]] = None,
    amp: Any = 1.0,
    theta: Angle = 0.0,
    bkg: Any = 0.0,
    alpha: Any = 1.0,
) -> Any:
    """
    An unnormalized two-dimensional Moffat function:

        f(p) = amp / (1 + d2)^alpha + bkg

    where `d2 = |p - p0|^2 / (fwhm / 2)^2` for an isotropic model, and
    `d2 = (dx / (fwhm_x / 2))^2 + (dy / (fwhm_y / 2))^2` for a diagonal
    model.

    Note: In this parametrization, `fwhm` is only the actual FWHM for
    `alpha = 1`; see `moffat_fwhm_to_gamma()` for the general relation.

    Args:
        px: The x-coordinate(s) at which to evaluate the model.
        py: The y-coordinate(s) at which to evaluate the model.
        fwhm: The width parameter; a scalar or a 2-tuple.
        x: The x-position of the center of the model.
        y: The y-position of the center of the model.
        pos: Alternatively, the position of the center as a 2-tuple.
        amp: The amplitude (i.e., the peak value above `bkg`).
        theta: The rotation angle in degrees (counter-clockwise).
        bkg: A constant background level.
        alpha: The power-law index of the Moffat function.

    Returns:
        The value(s) of the model at `(px, py)`.
    """

    dx, dy = _get_offsets('moffat', px, py, x, y, pos, fwhm, theta)
    sqdist = _scaled_sqdist(dx, dy, fwhm, 0.5)
    return amp / (1 + sqdist) ** alpha + bkg


def moffat_fwhm_to_gamma(fwhm: Any, alpha: Any) -> Any:
    """
    Convert the FWHM of a Moffat function with power-law index `alpha`
    into its core width `gamma`.
    """
    return fwhm / (2 * np.sqrt(2 ** (1 / alpha) - 1))


def moffat_gamma_to_fwhm(gamma: Any, alpha: Any) -> Any:
    """
    Convert the core width `gamma` of a Moffat function with power-law
    index `alpha` into its FWHM.
    """
    return gamma * (2 * np.sqrt(2 ** (1 / alpha) - 1))


# -----------------------------------------------------------------------------
# MODEL REGISTRY
# -----------------------------------------------------------------------------

MODELS: Dict[str, PSFFunction] = {
    'gaussian': gaussian,
    'normal': normal,
    'airydisk': airydisk,
    'moffat': moffat,
}

_COMMON_PARAMETERS = ('x', 'y', 'pos', 'fwhm', 'amp', 'theta', 'bkg')
PARAMETER_NAMES: Dict[str, Tuple[str, ...]] = {
    'gaussian': _COMMON_PARAMETERS,
    'normal': _COMMON_PARAMETERS,
    'airydisk': _COMMON_PARAMETERS + ('ratio',),
    'moffat': _COMMON_PARAMETERS + ('alpha',),
}


def get_model(model: Union[str, PSFFunction]) -> PSFFunction:
    """
    Get a model function either by its name or return the given
    callable as it is.
    """

    if callable(model):
        return model
    try:
        return MODELS[model]
    except KeyError:
        raise ValueError(
            f'Unknown model "{model}"! Valid models: {sorted(MODELS)}.'
        )


def get_model_name(model: Union[str, Callable[..., Any]]) -> str:
    """
    Get the name of a model (function) from the registry.
    """

    if isinstance(model, str):
        get_model(model)
        return model
    for name, function in MODELS.items():
        if function is model:
            return name
    return getattr(model, '__name__', repr(model))


def evaluate_over(
    model: Union[str, PSFFunction],
    indices: IndexDomain,
    **params: Any,
) -> np.ndarray:
    """
    Evaluate a model on all points of an index domain.

    Args:
        model: A model function, or the name of one.
        indices: A 2-tuple `(x_indices, y_indices)` defining the index
            domain.
        **params: The parameters of the model.

    Returns:
        A numpy array of shape `(len(y_indices), len(x_indices))` with
        the values of the model.
    """

    xx, yy = get_meshgrid(indices)
    return np.array(get_model(model)(xx, yy, **params))
