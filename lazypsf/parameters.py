"""
Methods for converting between named model parameters and the flat
parameter vectors that are used by the optimizer.

A set of model parameters is an ordered dictionary that maps parameter
names to scalar values. The only exception is the `fwhm`, which can
also be a 2-tuple `(fwhm_x, fwhm_y)` for diagonal models. When turned
into a vector, such a bivariate `fwhm` occupies two consecutive slots
at the position of the `fwhm` key; all other parameters occupy one.
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from typing import Any, Dict, Mapping, Sequence, Tuple, Union

import numpy as np

from lazypsf.functions import is_bivariate


# -----------------------------------------------------------------------------
# TYPE DEFINITIONS
# -----------------------------------------------------------------------------

ParameterValue = Union[float, Tuple[float, float]]
ParameterSet = Dict[str, ParameterValue]


# -----------------------------------------------------------------------------
# FUNCTION DEFINITIONS
# -----------------------------------------------------------------------------

def check_params(params: Mapping[str, Any]) -> None:
    """
    Make sure that the given `params` can be fitted, that is, that only
    the `fwhm` has two values, and that the rotation angle `theta` is
    not a free parameter of an isotropic model (in which case it would
    be completely degenerate).

    Args:
        params: A dictionary with the (initial values of the) model
            parameters that should be fitted.
    """

    for name, value in params.items():
        if name != 'fwhm' and np.ndim(value) != 0:
            raise ValueError(f'Parameter {name} must be a scalar!')

    bivariate_fwhm = 'fwhm' in params and is_bivariate(params['fwhm'])
    if 'theta' in params and not bivariate_fwhm:
        raise ValueError('cannot fit theta for isotropic distribution!')


def vector_from_params(
    params: Mapping[str, Any],
    dtype: Any = float,
) -> np.ndarray:
    """
    Flatten a set of named parameters into a vector.

    The parameters are processed in the order of their keys. If the
    `fwhm` is a 2-tuple, its two values are inserted in place of the
    `fwhm` (first `fwhm_x`, then `fwhm_y`).

    Args:
        params: A dictionary with the model parameters.
        dtype: The data type of the resulting vector.

    Returns:
        A 1D numpy array with the values of the parameters.
    """

    values = []
    for name, value in params.items():
        if name == 'fwhm' and is_bivariate(value):
            fwhm_x, fwhm_y = value
            values.extend([fwhm_x, fwhm_y])
        else:
            values.append(value)

    return np.asarray(values, dtype=dtype)


def params_from_vector(
    names: Sequence[str],
    values: Sequence[Any],
) -> Dict[str, Any]:
    """
    Turn a parameter vector back into a set of named parameters; this
    is the inverse of `vector_from_params()`.

    If there is one more value than there are `names`, and one of the
    names is `fwhm`, the value at the position of the `fwhm` and the one
    after it are combined into a 2-tuple `(fwhm_x, fwhm_y)`.

    Note: The values are not converted, so this function also works for
    vectors of jax tracers (i.e., inside a loss function that is being
    differentiated).

    Args:
        names: The names of the parameters, in the same order in which
            they were used to create the vector.
        values: The parameter vector.

    Returns:
        A dictionary that maps the `names` to their values.
    """

    names = list(names)

    # Case 1: Bivariate fwhm, which occupies two slots
    if len(values) > len(names) and 'fwhm' in names:
        idx = names.index('fwhm')
        params = dict(zip(names[:idx], values[:idx]))
        params['fwhm'] = (values[idx], values[idx + 1])
        params.update(zip(names[idx + 1:], values[idx + 2:]))
        return params

    # Case 2: Every name corresponds to exactly one value
    if len(values) != len(names):
        raise ValueError(
            f'Got {len(values)} values for {len(names)} parameter names!'
        )
    return dict(zip(names, values))
