"""
Tests for parameters.py
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from deepdiff import DeepDiff

import numpy as np
import pytest

from lazypsf.parameters import (
    check_params,
    params_from_vector,
    vector_from_params,
)


# -----------------------------------------------------------------------------
# TEST CASES
# -----------------------------------------------------------------------------

def test__check_params() -> None:

    # Case 1: valid parameters
    check_params({'x': 12, 'y': 13, 'fwhm': 1, 'amp': 2})
    check_params({'x': 12, 'y': 13, 'fwhm': (1, 2), 'theta': 13})

    # Case 2: theta cannot be fitted for an isotropic model
    with pytest.raises(ValueError) as value_error:
        check_params({'x': 12, 'y': 13, 'fwhm': 1, 'theta': 13})
    assert 'cannot fit theta for isotropic distribution' in str(value_error)

    # Case 3: ... and neither without any fwhm
    with pytest.raises(ValueError) as value_error:
        check_params({'x': 12, 'y': 13, 'theta': 13})
    assert 'cannot fit theta for isotropic distribution' in str(value_error)

    # Case 4: only the fwhm may have two values
    with pytest.raises(ValueError) as value_error:
        check_params({'pos': (12, 13), 'fwhm': 1})
    assert 'Parameter pos must be a scalar' in str(value_error)


def test__vector_from_params() -> None:

    # Case 1: isotropic
    vector = vector_from_params({'x': 12, 'y': 13, 'fwhm': 2.5, 'amp': 1})
    assert np.array_equal(vector, [12, 13, 2.5, 1])
    assert vector.dtype == np.float64

    # Case 2: diagonal fwhm is expanded in place
    vector = vector_from_params({'amp': 1, 'fwhm': (2.5, 3.5), 'x': 12})
    assert np.array_equal(vector, [1, 2.5, 3.5, 12])

    # Case 3: diagonal fwhm at the end
    vector = vector_from_params({'x': 12, 'y': 13, 'fwhm': [2.5, 3.5]})
    assert np.array_equal(vector, [12, 13, 2.5, 3.5])

    # Case 4: dtype
    vector = vector_from_params({'x': 12, 'fwhm': 3}, dtype=np.float32)
    assert vector.dtype == np.float32


def test__params_from_vector() -> None:

    # Case 1: isotropic
    params = params_from_vector(('x', 'y', 'fwhm'), [12.0, 13.0, 2.5])
    assert params == {'x': 12.0, 'y': 13.0, 'fwhm': 2.5}
    assert list(params.keys()) == ['x', 'y', 'fwhm']

    # Case 2: diagonal fwhm in the middle
    params = params_from_vector(
        ['x', 'fwhm', 'theta', 'amp'], np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    )
    assert params == {'x': 1.0, 'fwhm': (2.0, 3.0), 'theta': 4.0, 'amp': 5.0}
    assert list(params.keys()) == ['x', 'fwhm', 'theta', 'amp']

    # Case 3: diagonal fwhm at the start and at the end
    params = params_from_vector(['fwhm', 'x'], [2.0, 3.0, 4.0])
    assert params == {'fwhm': (2.0, 3.0), 'x': 4.0}
    params = params_from_vector(['x', 'fwhm'], [4.0, 2.0, 3.0])
    assert params == {'x': 4.0, 'fwhm': (2.0, 3.0)}

    # Case 4: number of values does not match the number of names
    with pytest.raises(ValueError) as value_error:
        params_from_vector(['x', 'y'], [1.0, 2.0, 3.0])
    assert 'Got 3 values for 2 parameter names' in str(value_error)


def test__round_trip() -> None:

    for params in (
        {'x': 13.5, 'y': 12.3, 'fwhm': 2.6, 'amp': 5.0},
        {'x': 13.5, 'y': 12.3, 'fwhm': (2.6, 2.4), 'amp': 5.0},
        {'amp': 5.0, 'fwhm': (2.6, 2.4), 'theta': 12.0, 'x': 1.0, 'y': 2.0},
        {'fwhm': (2.6, 2.4), 'ratio': 0.12},
        {'alpha': 1.2, 'x': 0.0, 'y': 0.0, 'fwhm': 3.0, 'bkg': -1.0},
    ):
        vector = vector_from_params(params)
        result = params_from_vector(list(params.keys()), vector)
        deepdiff = DeepDiff(
            t1=result, t2=params, ignore_numeric_type_changes=True
        )
        assert not deepdiff
        assert list(result.keys()) == list(params.keys())
