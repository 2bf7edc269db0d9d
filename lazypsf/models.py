"""
Lazy PSF models: objects that behave like (bounded) 2D arrays, but that
compute their values on the fly instead of storing them.

Every model has a bounding box (`indices`), which is derived from its
position and FWHM, and which is used as the default domain for rendering
the model into an actual array. The bounding box is only a convenience:
a model can be evaluated at arbitrary (real-valued) positions.
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from pprint import pformat
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from lazypsf.coordinates import (
    Angle,
    IndexDomain,
    get_meshgrid,
    indices_from_extent,
    resolve_position,
)
from lazypsf.functions import airydisk, gaussian, is_bivariate, moffat
from lazypsf.typehinting import PSFFunction


# -----------------------------------------------------------------------------
# BASE CLASS
# -----------------------------------------------------------------------------

class PSFModel:
    """
    This class implements the array-like functionality that is shared
    between all lazy PSF models.
    """

    dtype: Any = None

    @property
    def indices(self) -> Tuple[range, range]:
        """
        The bounding box of the model as a 2-tuple `(x_indices,
        y_indices)`. This has to be implemented by every model.
        """
        raise NotImplementedError

    @property
    def shape(self) -> Tuple[int, int]:
        """
        The shape of the bounding box (in numpy order).
        """
        x_indices, y_indices = self.indices
        return len(y_indices), len(x_indices)

    def evaluate(self, px: Any, py: Any) -> Any:
        """
        Evaluate the model at the point(s) `(px, py)`. This has to be
        implemented by every model.
        """
        raise NotImplementedError

    def __call__(self, px: Any, py: Any) -> Any:
        """
        Evaluate the model at the point(s) `(px, py)`; the output type
        is determined by the `dtype` of the model.
        """

        # Copy, so that the result does not share the (read-only) jax buffer
        value = np.array(self.evaluate(px, py), dtype=self.dtype)
        return value[()] if value.ndim == 0 else value

    def __getitem__(self, idx: Tuple[Any, Any]) -> Any:
        """
        Evaluate the model at integer pixel positions, using the numpy
        convention for the order of the axes, i.e., `model[y, x]`.
        """

        y_idx, x_idx = idx
        return self(np.asarray(x_idx), np.asarray(y_idx))

    def render(self, indices: Optional[IndexDomain] = None) -> np.ndarray:
        """
        Materialize the model as a numpy array.

        Args:
            indices: The index domain `(x_indices, y_indices)` on which
                to evaluate the model. By default, the bounding box of
                the model is used.

        Returns:
            A numpy array of shape `(len(y_indices), len(x_indices))`.
        """

        xx, yy = get_meshgrid(self.indices if indices is None else indices)
        return np.asarray(self(xx, yy))

    def __mul__(self, other: Any) -> 'ScaledPSFModel':
        return ScaledPSFModel(other, self)

    def __rmul__(self, other: Any) -> 'ScaledPSFModel':
        return ScaledPSFModel(other, self)

    def __truediv__(self, other: Any) -> 'ScaledPSFModel':
        return ScaledPSFModel(1 / other, self)


# -----------------------------------------------------------------------------
# ANALYTICAL MODELS
# -----------------------------------------------------------------------------

class _AnalyticalPSFModel(PSFModel):
    """
    A lazy model based on one of the functions in :mod:`lazypsf.functions`.

    Args:
        fwhm: The FWHM of the model; a scalar (isotropic model) or a
            2-tuple `(fwhm_x, fwhm_y)` (diagonal model).
        x: The x-position of the center of the model.
        y: The y-position of the center of the model.
        pos: Alternatively, the position as a 2-tuple `(x, y)`.
        r: Alternatively, the separation of the center from `origin`.
        phi: The polar angle (in degrees) that goes with `r`. (This is
            not called `theta`, because `theta` is the rotation angle.)
        origin: The origin for polar positions; default: `(0, 0)`.
        amp: The amplitude of the model.
        bkg: A constant background level.
        theta: The rotation angle in degrees (counter-clockwise); only
            affects diagonal models.
        maxsize: The size of the bounding box in units of the FWHM;
            a scalar or a 2-tuple.
        extent: Alternatively, the size of the bounding box (in pixels);
            a scalar or a 2-tuple.
        dtype: The data type of the model values; use `None` to let the
            type follow the type of the inputs.
    """

    function: PSFFunction

    def __init__(
        self,
        fwhm: Union[float, Sequence[float]],
        *,
        x: Optional[float] = None,
        y: Optional[float] = None,
        pos: Optional[Sequence[float]] = None,
        r: Optional[float] = None,
        phi: Optional[Angle] = None,
        origin: Sequence[float] = (0, 0),
        amp: float = 1.0,
        bkg: float = 0.0,
        theta: Angle = 0.0,
        maxsize: Union[float, Sequence[float]] = 3,
        extent: Optional[Union[float, Sequence[float]]] = None,
        dtype: Any = float,
    ) -> None:

        # By default, the model is placed at the origin
        if all(_ is None for _ in (x, y, pos, r, phi)):
            x, y = 0.0, 0.0
        self.position = resolve_position(
            x=x, y=y, pos=pos, r=r, theta=phi, origin=origin
        )

        self.fwhm = tuple(fwhm) if is_bivariate(fwhm) else fwhm
        self.amp = amp
        self.bkg = bkg
        self.theta = theta
        self.dtype = dtype

        # Determine the bounding box, either from the FWHM or from the extent
        if extent is None:
            self._indices = indices_from_extent(
                self.position, self.fwhm, maxsize
            )
        else:
            self._indices = indices_from_extent(self.position, extent, 1)

    @property
    def indices(self) -> Tuple[range, range]:
        return self._indices

    @property
    def parameters(self) -> Dict[str, Any]:
        """
        Get a dictionary that contains a mapping between the parameter
        names and the respective parameter values; this can be passed
        directly to the function of the model.
        """

        return {
            'x': self.position[0],
            'y': self.position[1],
            'fwhm': self.fwhm,
            'amp': self.amp,
            'theta': self.theta,
            'bkg': self.bkg,
        }

    def evaluate(self, px: Any, py: Any) -> Any:
        return type(self).function(px, py, **self.parameters)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({pformat(self.parameters)})'


class Gaussian(_AnalyticalPSFModel):
    """
    A lazy, unnormalized bivariate Gaussian; see
    :func:`lazypsf.functions.gaussian` for the functional form.
    """

    function = gaussian


Normal = Gaussian


class AiryDisk(_AnalyticalPSFModel):
    """
    A lazy, unnormalized Airy disk with an optional central obscuration
    `ratio`; see :func:`lazypsf.functions.airydisk`.
    """

    function = airydisk

    def __init__(
        self,
        fwhm: Union[float, Sequence[float]],
        *,
        ratio: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(fwhm, **kwargs)
        self.ratio = ratio

    @property
    def parameters(self) -> Dict[str, Any]:
        return {**super().parameters, 'ratio': self.ratio}


class Moffat(_AnalyticalPSFModel):
    """
    A lazy, unnormalized Moffat function with power-law index `alpha`;
    see :func:`lazypsf.functions.moffat`.
    """

    function = moffat

    def __init__(
        self,
        fwhm: Union[float, Sequence[float]],
        *,
        alpha: float = 1.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(fwhm, **kwargs)
        self.alpha = alpha

    @property
    def parameters(self) -> Dict[str, Any]:
        return {**super().parameters, 'alpha': self.alpha}


# -----------------------------------------------------------------------------
# SCALED MODELS
# -----------------------------------------------------------------------------

class ScaledPSFModel(PSFModel):
    """
    A lazy wrapper that multiplies a `model` by a scalar `amp` when it is
    evaluated. Usually, this is created implicitly, e.g., `20 * model`
    or `model / 100`.

    Args:
        amp: The scaling factor.
        model: The model that is scaled.
    """

    def __init__(self, amp: Any, model: PSFModel) -> None:

        # Fold nested scalings into a single factor
        if isinstance(model, ScaledPSFModel):
            amp = amp * model.amp
            model = model.model

        self.amp = amp
        self.model = model
        self.dtype = model.dtype

    @property
    def indices(self) -> Tuple[range, range]:
        return self.model.indices

    def evaluate(self, px: Any, py: Any) -> Any:
        return self.amp * self.model.evaluate(px, py)

    def __repr__(self) -> str:
        return f'ScaledPSFModel({self.amp!r}, {self.model!r})'
