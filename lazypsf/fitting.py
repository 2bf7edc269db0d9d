"""
Methods for fitting PSF models to data.

The fit works on a (sparse) set of named parameters: the caller decides
which parameters of a model should be fitted by passing their initial
values, and which ones should be kept fixed ("frozen"). The free
parameters are turned into a flat vector, which is then optimized with
``scipy.optimize.minimize``. Gradients (and Hessians) of the loss are
obtained by forward-mode automatic differentiation with ``jax``.

Constraints (e.g., a positive FWHM) are not passed to the optimizer;
instead, the loss function returns `+inf` for infeasible parameters.
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Union,
)

import warnings

from scipy.optimize import minimize, OptimizeResult

import jax
import jax.numpy as jnp
import numpy as np

from lazypsf.coordinates import (
    IndexDomain,
    get_domain_bounds,
    get_index_domain,
    get_meshgrid,
    to_degrees,
)
from lazypsf.functions import evaluate_over, get_model, is_bivariate
from lazypsf.parameters import (
    ParameterSet,
    check_params,
    params_from_vector,
    vector_from_params,
)
from lazypsf.typehinting import LossFunction, PSFFunction


# -----------------------------------------------------------------------------
# CONSTANTS
# -----------------------------------------------------------------------------

# Methods of scipy.optimize.minimize() that make use of the Hessian, and
# methods that do not use any derivatives at all
HESSIAN_METHODS = (
    'dogleg',
    'newton-cg',
    'trust-constr',
    'trust-exact',
    'trust-krylov',
    'trust-ncg',
)
DERIVATIVE_FREE_METHODS = ('cobyla', 'cobyqa', 'nelder-mead', 'powell')


# -----------------------------------------------------------------------------
# CLASS DEFINITIONS
# -----------------------------------------------------------------------------

class ConvergenceWarning(UserWarning):
    """
    Warning that is issued when the optimizer did not converge.
    """


@dataclass(frozen=True)
class FitResult:
    """
    The result of `fit()`.

    For convenience, a `FitResult` can be unpacked like a 2-tuple:

        params, model = fit(...)

    Args:
        params: The best-fit values of the free parameters (i.e., the
            frozen parameters are not included).
        model: The best-fit model, evaluated on the index domain that
            was used for the fit.
        optimizer_result: The full result returned by the optimizer.
    """

    params: ParameterSet
    model: np.ndarray
    optimizer_result: OptimizeResult

    @property
    def converged(self) -> bool:
        """
        Whether or not the optimizer reported convergence.
        """
        return bool(self.optimizer_result.success)

    def __iter__(self) -> Iterator[Any]:
        return iter((self.params, self.model))


# -----------------------------------------------------------------------------
# AUXILIARY FUNCTION DEFINITIONS
# -----------------------------------------------------------------------------

def _to_float_params(params: Mapping[str, Any]) -> ParameterSet:
    """
    Convert the values of a parameter dictionary into plain floats (or
    2-tuples of floats, for a bivariate `fwhm`).
    """

    result: ParameterSet = {}
    for name, value in params.items():
        if isinstance(value, tuple):
            result[name] = (float(value[0]), float(value[1]))
        else:
            result[name] = float(value)
    return result


def _check_parameter_names(
    names: Sequence[str],
    frozen_params: Mapping[str, Any],
) -> None:
    """
    Make sure that the free and the frozen parameters together specify
    a position and a FWHM, and that no parameter is both.
    """

    if overlap := set(names) & set(frozen_params):
        raise ValueError(
            f'Parameters cannot be both free and frozen: {sorted(overlap)}!'
        )

    all_names = set(names) | set(frozen_params)
    if 'pos' in all_names and all_names & {'x', 'y'}:
        raise ValueError(
            'Position must be given either as (x, y) or as pos, not both!'
        )
    if not ({'x', 'y'} <= all_names or 'pos' in all_names):
        raise ValueError('Parameters must contain a position (x, y or pos)!')
    if 'fwhm' not in all_names:
        raise ValueError('Parameters must contain the fwhm!')


# -----------------------------------------------------------------------------
# FUNCTION DEFINITIONS
# -----------------------------------------------------------------------------

def build_loss_function(
    model: Union[str, PSFFunction],
    names: Sequence[str],
    image: np.ndarray,
    indices: Optional[IndexDomain] = None,
    *,
    frozen_params: Optional[Mapping[str, Any]] = None,
    loss: LossFunction = jnp.square,
    max_fwhm: Union[float, Sequence[float]] = np.inf,
) -> Callable[[Any], Any]:
    """
    Build the loss function for fitting a `model` to an `image`.

    The loss function takes a parameter vector (which is interpreted
    using the given parameter `names`, see `params_from_vector()`) and
    returns the sum of the `loss` of the residuals between the model
    and the data over the index domain. Parameter vectors that violate
    one of the following constraints do not get evaluated; instead, the
    loss function returns `+inf`:

        1. The position must lie within the index domain (with a margin
           of half a pixel on each side).
        2. Every component of the `fwhm` must be in (0, max_fwhm).
        3. If present, the obscuration `ratio` must be in (0, 1).
        4. If present, the rotation angle `theta` must be in (-45, 45).
           This removes the degeneracy of diagonal models under
           rotations by multiples of 90 degrees.

    The constraints are checked on the concrete parameter values, which
    is possible also while the loss function is being differentiated
    with ``jax`` in forward mode.

    Args:
        model: A model function (or the name of one); see
            :mod:`lazypsf.functions`.
        names: The names of the free parameters (in order).
        image: A 2D numpy array containing the data.
        indices: The index domain `(x_indices, y_indices)` that is used
            for the fit. By default, the entire `image` is used.
        frozen_params: A dictionary with additional model parameters
            that are passed to the model, but that are not optimized.
        loss: The element-wise loss that is applied to the residuals.
            The default (squared residuals) corresponds to a chi-squared
            loss; use, e.g., `jnp.abs` for an L1 loss.
        max_fwhm: Upper limit for the `fwhm`; either a scalar, or a
            2-tuple with one limit per axis.

    Returns:
        The loss function, which maps a parameter vector to a scalar.
    """

    # Prepare model and parameters
    model = get_model(model)
    names = list(names)
    frozen_params = dict(frozen_params or {})
    _check_parameter_names(names, frozen_params)

    # Prepare the index domain and select the corresponding data
    if indices is None:
        indices = get_index_domain(image.shape)
    (x_min, x_max), (y_min, y_max) = get_domain_bounds(indices)
    xx, yy = get_meshgrid(indices)
    data = np.nan_to_num(np.asarray(image, dtype=float))[
        np.ix_(list(indices[1]), list(indices[0]))
    ]

    # Upper limit for the fwhm along each axis
    max_fwhm_x, max_fwhm_y = np.broadcast_to(max_fwhm, (2,))

    def is_feasible(params: Mapping[str, Any]) -> bool:

        # Position is within the index domain
        if 'pos' in params:
            x, y = params['pos']
        else:
            x, y = params['x'], params['y']
        if not x_min - 0.5 <= x <= x_max + 0.5:
            return False
        if not y_min - 0.5 <= y <= y_max + 0.5:
            return False

        # FWHM is positive and below the maximum value
        fwhm = params['fwhm']
        fwhm_x, fwhm_y = fwhm if is_bivariate(fwhm) else (fwhm, fwhm)
        if not (0 < fwhm_x < max_fwhm_x and 0 < fwhm_y < max_fwhm_y):
            return False

        # Obscuration ratio is strictly in (0, 1)
        if 'ratio' in params and not 0 < params['ratio'] < 1:
            return False

        # Avoid rotational degeneracy of the diagonal models
        if 'theta' in params and not -45 < to_degrees(params['theta']) < 45:
            return False

        return True

    @jax.jit
    def residual_loss(X: Any) -> Any:

        # Sum of the loss of the residuals (by default, chi-squared); the
        # frozen parameters are constants of the compiled function
        params = {**frozen_params, **params_from_vector(names, X)}
        residuals = model(xx, yy, **params) - data
        return jnp.sum(loss(residuals))

    def loss_function(X: Any) -> Any:

        # Infeasible parameters get an infinite loss. The check runs on the
        # concrete values, outside of the compiled function.
        params = {**frozen_params, **params_from_vector(names, X)}
        if not is_feasible(params):
            return jnp.asarray(jnp.inf, dtype=jnp.result_type(X, float))

        return residual_loss(jnp.asarray(X))

    return loss_function


def fit(
    model: Union[str, PSFFunction],
    params: Mapping[str, Any],
    image: np.ndarray,
    indices: Optional[IndexDomain] = None,
    *,
    frozen_params: Optional[Mapping[str, Any]] = None,
    loss: LossFunction = jnp.square,
    max_fwhm: Union[float, Sequence[float]] = np.inf,
    method: Union[str, Callable[..., Any]] = 'trust-exact',
    **kwargs: Any,
) -> FitResult:
    """
    Fit a PSF `model` to the data in `image`.

    The free parameters of the fit, as well as their initial values, are
    given as a dictionary `params`, for example:

        params = {'x': 20, 'y': 20, 'fwhm': 3, 'amp': 1}

    The order of the parameters does not matter. To fit a diagonal model
    (with a separate FWHM along each axis), use a 2-tuple for the fwhm:

        params = {'x': 20, 'y': 20, 'fwhm': (3, 3), 'theta': 0}

    Note that the rotation angle `theta` can only be fitted for diagonal
    models. Parameters that should be passed to the model without being
    fitted (e.g., a fixed `alpha` for a Moffat model) can be given as
    `frozen_params`.

    Args:
        model: A model function (or the name of one); see
            :mod:`lazypsf.functions`.
        params: A dictionary with the initial values for the parameters
            that should be fitted.
        image: A 2D numpy array containing the data.
        indices: The index domain `(x_indices, y_indices)` that is used
            for the fit. By default, the entire `image` is used.
        frozen_params: A dictionary with additional model parameters
            that are passed to the model, but that are not fitted.
        loss: The element-wise loss that is applied to the residuals;
            default: squared residuals (i.e., chi-squared).
        max_fwhm: Upper limit for the `fwhm`; either a scalar, or a
            2-tuple with one limit per axis.
        method: The optimization method; see the documentation of
            `scipy.optimize.minimize()`. By default, we use a Newton
            method with a trust region, with the gradient and the
            Hessian obtained from forward-mode automatic differentiation.
        **kwargs: Additional keyword arguments that are passed to
            `scipy.optimize.minimize()` (e.g., `tol` or `options`).

    Returns:
        A `FitResult` with the best-fit parameters (excluding the frozen
        parameters) and the best-fit model evaluated on the index
        domain. It can be unpacked as `params, model = fit(...)`.
    """

    # Make sure the parameters can be fitted before doing anything else
    check_params(params)
    names = list(params.keys())
    frozen_params = dict(frozen_params or {})

    if indices is None:
        indices = get_index_domain(image.shape)

    # Set up the loss function and its derivatives
    loss_function = build_loss_function(
        model=model,
        names=names,
        image=image,
        indices=indices,
        frozen_params=frozen_params,
        loss=loss,
        max_fwhm=max_fwhm,
    )
    gradient = jax.jacfwd(loss_function)
    hessian = jax.jacfwd(gradient)

    # Only pass the derivatives to methods that can make use of them
    method_name = method.lower() if isinstance(method, str) else ''
    derivatives: Dict[str, Any] = {}
    if method_name not in DERIVATIVE_FREE_METHODS:
        derivatives['jac'] = lambda X: np.asarray(gradient(jnp.asarray(X)))
    if method_name in HESSIAN_METHODS or callable(method):
        derivatives['hess'] = lambda X: np.asarray(hessian(jnp.asarray(X)))

    # Run the optimizer, starting at the initial guess
    with warnings.catch_warnings():

        # Ignore some numpy warnings here that can happen if the minimizer
        # explores a particularly bad parameter range
        warnings.filterwarnings('ignore', r'invalid value encountered')
        warnings.filterwarnings('ignore', r'overflow encountered in')
        warnings.filterwarnings('ignore', r'divide by zero encountered')

        result = minimize(
            fun=lambda X: float(loss_function(jnp.asarray(X))),
            x0=vector_from_params(params),
            method=method,
            **derivatives,
            **kwargs,
        )

    # Convergence failures are reported, but the best result is still used
    if not result.success:
        warnings.warn(
            f'Optimizer did not converge: {result.message}',
            ConvergenceWarning,
        )

    # Turn the best-fit parameter vector back into named parameters and
    # evaluate the best-fit model on the index domain
    best_params = _to_float_params(params_from_vector(names, result.x))
    best_model = evaluate_over(
        model, indices, **{**frozen_params, **best_params}
    )

    return FitResult(
        params=best_params, model=best_model, optimizer_result=result
    )
