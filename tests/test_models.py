"""
Tests for models.py
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from deepdiff import DeepDiff

import numpy as np
import pytest

from lazypsf.functions import (
    RotationWarning,
    airydisk,
    evaluate_over,
    gaussian,
    moffat,
)
from lazypsf.models import (
    AiryDisk,
    Gaussian,
    Moffat,
    Normal,
    ScaledPSFModel,
)


# -----------------------------------------------------------------------------
# TEST CASES
# -----------------------------------------------------------------------------

def test__gaussian() -> None:

    model = Gaussian(10, x=12, y=13)

    # Case 1: peak value, evaluated as a function and as an array
    assert model(12, 13) == 1
    assert model[13, 12] == 1
    assert isinstance(model(12, 13), np.float64)

    # Case 2: evaluation at real-valued positions
    expected = gaussian(12.5, 13.5, x=12, y=13, fwhm=10)
    assert np.isclose(model(12.5, 13.5), expected)
    assert np.isclose(model(17, 13), 0.5)

    # Case 3: bounding box (half extent = 3 * 10 / 2 = 15)
    assert model.indices == (range(-3, 28), range(-2, 29))
    assert model.shape == (31, 31)

    # Case 4: fancy indexing
    values = model[np.arange(3)[:, None], np.arange(4)]
    assert values.shape == (3, 4)
    assert values.flags.writeable
    assert np.isclose(values[2, 3], model(3, 2))

    # Case 5: alias
    assert Normal is Gaussian


def test__render() -> None:

    model = Gaussian((10, 6), x=12, y=13, amp=2, theta=20)

    # Case 1: default domain is the bounding box
    image = model.render()
    assert image.shape == model.shape
    x_indices, y_indices = model.indices
    assert np.isclose(image[13 - y_indices[0], 12 - x_indices[0]], 2)
    assert np.isclose(image.max(), 2)

    # Case 2: result is a regular numpy array that can be modified
    assert image.flags.writeable
    image[0, 0] = -1
    assert image[0, 0] == -1

    # Case 3: custom domain
    indices = (range(30), range(20))
    image = model.render(indices)
    assert image.shape == (20, 30)
    assert np.isclose(image[13, 12], 2)
    assert np.allclose(
        image,
        evaluate_over(
            gaussian, indices, x=12, y=13, fwhm=(10, 6), amp=2, theta=20
        ),
    )


def test__position() -> None:

    # Case 1: default position is the origin
    model = Gaussian(5)
    assert model.position == (0, 0)
    assert model.indices == (range(-8, 9), range(-8, 9))

    # Case 2: position vector
    model = Gaussian(5, pos=(3, 4))
    assert model.position == (3, 4)

    # Case 3: polar coordinates
    model = Gaussian(5, r=10, phi=90, origin=(50, 50))
    assert np.allclose(model.position, (50, 60))
    assert np.isclose(model(50, 60), 1)

    # Case 4: ambiguous position
    with pytest.raises(ValueError) as value_error:
        Gaussian(5, x=1, y=2, pos=(1, 2))
    assert 'Position must be given' in str(value_error)


def test__extent() -> None:

    # Case 1: scalar extent
    model = Gaussian(5, pos=(10, 10), extent=4)
    assert model.indices == (range(8, 13), range(8, 13))

    # Case 2: one extent per axis
    model = Gaussian(5, pos=(10, 10), extent=(4, 8))
    assert model.indices == (range(8, 13), range(6, 15))
    assert model.shape == (9, 5)

    # Case 3: maxsize per axis
    model = Gaussian(2, pos=(10.3, 20.8), maxsize=(1, 2))
    assert model.indices == (range(9, 12), range(19, 24))


def test__dtype() -> None:

    # Case 1: default is float
    assert Gaussian(5)(1, 2).dtype == np.float64
    assert Gaussian(5).render().dtype == np.float64

    # Case 2: custom type
    model = Gaussian(5, dtype=np.float32)
    assert model(1, 2).dtype == np.float32
    assert model.render().dtype == np.float32
    assert (3 * model).render().dtype == np.float32


def test__parameters() -> None:

    # Case 1: Gaussian
    model = Gaussian((3, 4), x=1, y=2, amp=3, theta=10)
    deepdiff = DeepDiff(
        t1=model.parameters,
        t2={
            'x': 1,
            'y': 2,
            'fwhm': (3, 4),
            'amp': 3,
            'theta': 10,
            'bkg': 0.0,
        },
    )
    assert not deepdiff
    assert list(model.parameters.keys())[:3] == ['x', 'y', 'fwhm']

    # Case 2: Airy disk and Moffat have an additional parameter
    assert AiryDisk(3, ratio=0.2).parameters['ratio'] == 0.2
    assert Moffat(3, alpha=2.5).parameters['alpha'] == 2.5

    # Case 3: list is converted to a tuple
    assert Gaussian([3, 4]).fwhm == (3, 4)

    # Case 4: representation
    assert repr(model).startswith('Gaussian({')
    assert "'fwhm': (3, 4)" in repr(model)


def test__airydisk() -> None:

    model = AiryDisk(10, ratio=0.3, x=5, y=5, amp=2, bkg=1)

    assert np.isclose(model(5, 5), 3)
    for px, py in ((8, 5), (11.5, 2.5), (20, 7)):
        expected = airydisk(
            px, py, x=5, y=5, fwhm=10, ratio=0.3, amp=2, bkg=1
        )
        assert np.isclose(model(px, py), expected)


def test__moffat() -> None:

    model = Moffat((10, 8), alpha=2, x=5, y=5, theta=-30)

    assert np.isclose(model(5, 5), 1)
    for px, py in ((8, 5), (11.5, 2.5), (20, 7)):
        expected = moffat(px, py, x=5, y=5, fwhm=(10, 8), alpha=2, theta=-30)
        assert np.isclose(model(px, py), expected)


def test__rotation_warning() -> None:

    model = Gaussian(10, theta=30)
    with pytest.warns(RotationWarning, match='isotropic gaussian'):
        value = model(3, 4)
    assert np.isclose(value, Gaussian(10)(3, 4))


def test__scaled_psf_model() -> None:

    model = Gaussian(10, x=12, y=13)

    # Case 1: scaling from the left and from the right
    for scaled in (20 * model, model * 20, ScaledPSFModel(20, model)):
        assert scaled.render().flags.writeable
        assert isinstance(scaled, ScaledPSFModel)
        assert np.isclose(scaled(12, 13), 20)
        assert np.isclose(scaled[13, 12], 20)
        assert scaled.indices == model.indices
        assert scaled.shape == model.shape
        assert np.allclose(scaled.render(), 20 * model.render())

    # Case 2: division
    scaled = model / 4
    assert np.isclose(scaled(12, 13), 0.25)

    # Case 3: nested scalings are folded
    scaled = 2 * (3 * model)
    assert scaled.amp == 6
    assert scaled.model is model
    assert np.isclose(scaled(12, 13), 6)

    # Case 4: representation
    assert repr(20 * model).startswith('ScaledPSFModel(20, Gaussian(')
