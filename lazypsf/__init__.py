"""
lazypsf: Lazy analytical PSF models and PSF fitting.
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from pathlib import Path

import jax

# The models are evaluated (and differentiated) with jax; all fits need
# double precision to reach the usual tolerances.
jax.config.update('jax_enable_x64', True)

from lazypsf.coordinates import (  # noqa: E402
    indices_from_extent,
    polar2cartesian,
    resolve_position,
)
from lazypsf.fitting import (  # noqa: E402
    ConvergenceWarning,
    FitResult,
    build_loss_function,
    fit,
)
from lazypsf.functions import (  # noqa: E402
    RotationWarning,
    airydisk,
    evaluate_over,
    gaussian,
    moffat,
    normal,
)
from lazypsf.models import (  # noqa: E402
    AiryDisk,
    Gaussian,
    Moffat,
    Normal,
    ScaledPSFModel,
)
from lazypsf.parameters import (  # noqa: E402
    params_from_vector,
    vector_from_params,
)


# -----------------------------------------------------------------------------
# VERSION
# -----------------------------------------------------------------------------

with open(Path(__file__).parent / 'VERSION') as version_file:
    __version__ = version_file.read().strip()
