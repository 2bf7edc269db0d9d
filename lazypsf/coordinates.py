"""
Methods for dealing with coordinates, positions and index domains.
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from typing import Any, Optional, Sequence, Tuple, Union

from astropy.units import Quantity

import numpy as np


# -----------------------------------------------------------------------------
# TYPE DEFINITIONS
# -----------------------------------------------------------------------------

Angle = Union[float, Quantity]
IndexDomain = Tuple[Sequence[int], Sequence[int]]


# -----------------------------------------------------------------------------
# FUNCTION DEFINITIONS
# -----------------------------------------------------------------------------

def to_degrees(angle: Angle) -> Any:
    """
    Get the raw value (in degrees) of an angle that is either given as
    a plain number (which is interpreted as degrees) or as a
    ``Quantity`` with angular units.
    """

    if isinstance(angle, Quantity):
        return angle.to('degree').value
    return angle


def polar2cartesian(
    separation: float,
    angle: Angle,
    origin: Sequence[float] = (0, 0),
) -> Tuple[float, float]:
    """
    Convert a position in (mathematical) polar coordinates to Cartesian
    coordinates.

    Args:
        separation: Distance of the position from the `origin`.
        angle: Angle, measured counter-clockwise from the positive
            x-axis. Plain numbers are interpreted as degrees; a
            ``Quantity`` with angular units is converted to degrees.
        origin: A 2-tuple `(x, y)` with the position of the origin of
            the polar coordinate system.

    Returns:
        A 2-tuple `(x, y)` containing the Cartesian representation of
        the position specified by `(separation, angle)`.
    """

    # Convert the angle from degrees to radian
    phi = np.deg2rad(to_degrees(angle))

    # Convert from polar to Cartesian coordinates and shift to the origin
    x = origin[0] + separation * np.cos(phi)
    y = origin[1] + separation * np.sin(phi)

    return x, y


def resolve_position(
    x: Optional[Any] = None,
    y: Optional[Any] = None,
    pos: Optional[Sequence[Any]] = None,
    r: Optional[float] = None,
    theta: Optional[Angle] = None,
    origin: Sequence[float] = (0, 0),
) -> Tuple[Any, Any]:
    """
    Turn a position specification into a 2-tuple `(x, y)`.

    Exactly one of the following configurations must be used:

        1. `x` and `y`: Cartesian coordinates.
        2. `pos`: A 2-tuple or vector `(x, y)`.
        3. `r` and `theta`: Polar coordinates (`theta` in degrees,
           counter-clockwise from the x-axis), optionally around the
           given `origin`.

    The values are passed through without conversion (for the first two
    configurations), so that they can also be arrays or tracers.

    Args:
        x: The x-coordinate of the position.
        y: The y-coordinate of the position.
        pos: The position as a 2-tuple or vector.
        r: The separation from the `origin`.
        theta: The polar angle (in degrees, or as a ``Quantity``).
        origin: The origin for polar coordinates; default: `(0, 0)`.

    Returns:
        The position as a 2-tuple `(x, y)`.
    """

    cartesian = x is not None or y is not None
    vector = pos is not None
    polar = r is not None or theta is not None

    # Make sure that exactly one way of specifying the position is used
    if sum((cartesian, vector, polar)) != 1:
        raise ValueError(
            'Position must be given either as (x, y), as pos, or as '
            '(r, theta)!'
        )

    # Case 1: Cartesian coordinates
    if cartesian:
        if x is None or y is None:
            raise ValueError('Need both x and y to specify a position!')
        return x, y

    # Case 2: Position vector
    if vector:
        if len(pos) != 2:  # type: ignore
            raise ValueError('pos must have exactly two elements!')
        return pos[0], pos[1]  # type: ignore

    # Case 3: Polar coordinates
    if r is None or theta is None:
        raise ValueError('Need both r and theta to specify a position!')
    return polar2cartesian(separation=r, angle=theta, origin=origin)


def indices_from_extent(
    pos: Sequence[float],
    fwhm: Union[float, Sequence[float]],
    maxsize: Union[float, Sequence[float]] = 3,
) -> Tuple[range, range]:
    """
    Compute the bounding box of a model centered at `pos`, that is, the
    integer indices along each axis at which the model needs to be
    evaluated to render it.

    The half-extent along each axis is `maxsize * fwhm / 2`. Both
    limits are rounded to the nearest integer (with numpy's rounding,
    i.e., round half to even), and the resulting ranges include both
    limits.

    Args:
        pos: A 2-tuple `(x, y)` with the center of the model.
        fwhm: The FWHM of the model; either a scalar, or a 2-tuple
            `(fwhm_x, fwhm_y)`.
        maxsize: The size of the box in units of the FWHM; either a
            scalar, or a 2-tuple with one value per axis.

    Returns:
        A 2-tuple `(x_indices, y_indices)` of ``range`` objects.
    """

    # Broadcast everything to one value per axis
    halfextent = (
        np.broadcast_to(maxsize, (2,)) * np.broadcast_to(fwhm, (2,)) / 2
    )
    center = np.asarray(pos, dtype=float)

    # Round lower and upper limits independently on each axis
    lower = np.round(center - halfextent).astype(int)
    upper = np.round(center + halfextent).astype(int)

    return (
        range(int(lower[0]), int(upper[0]) + 1),
        range(int(lower[1]), int(upper[1]) + 1),
    )


def get_index_domain(shape: Tuple[int, ...]) -> Tuple[range, range]:
    """
    Get the default index domain `(x_indices, y_indices)` of a 2D array
    with the given `shape` (in numpy order, i.e., `(n_y, n_x)`).
    """

    if len(shape) != 2:
        raise ValueError('Index domains are only defined for 2D arrays!')
    return range(shape[1]), range(shape[0])


def get_domain_bounds(
    indices: IndexDomain,
) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    """
    Get the minimum and maximum index along each axis of an index
    domain, as `((x_min, x_max), (y_min, y_max))`.
    """

    x_indices, y_indices = indices
    if len(x_indices) == 0 or len(y_indices) == 0:
        raise ValueError('Index domain must not be empty!')
    return (
        (int(min(x_indices)), int(max(x_indices))),
        (int(min(y_indices)), int(max(y_indices))),
    )


def get_meshgrid(indices: IndexDomain) -> Tuple[np.ndarray, np.ndarray]:
    """
    Get the meshgrid `(xx, yy)` of an index domain; both arrays have the
    shape `(len(y_indices), len(x_indices))`.
    """

    x_indices, y_indices = indices
    xx, yy = np.meshgrid(
        np.asarray(x_indices, dtype=float),
        np.asarray(y_indices, dtype=float),
    )
    return xx, yy
