"""
Methods for reading in configuration files for fits and for turning
them into keyword arguments for :func:`lazypsf.fitting.fit`.
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from pathlib import Path
from typing import Any, Dict, Union

import json

import jax.numpy as jnp

from lazypsf.functions import get_model


# -----------------------------------------------------------------------------
# CONSTANTS
# -----------------------------------------------------------------------------

LOSSES = {'l1': jnp.abs, 'l2': jnp.square}

FIT_OPTIONS = (
    'model',
    'params',
    'frozen_params',
    'loss',
    'max_fwhm',
    'method',
    'options',
    'tol',
)


# -----------------------------------------------------------------------------
# FUNCTION DEFINITIONS
# -----------------------------------------------------------------------------

def load_config(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a (JSON) configuration file.

    Args:
        file_path: Path to the JSON file containing the configuration
            to be loaded.

    Returns:
        A dictionary containing configuration.
    """

    # Make sure that the file_path is an instance of Path
    if not isinstance(file_path, Path):
        file_path = Path(file_path)

    # Double-check that the target file exists
    if not file_path.exists():
        raise FileNotFoundError(f'{file_path} does not exist!')

    # Load the config file into a dict
    with open(file_path, 'r') as json_file:
        config: Dict[str, Any] = json.load(json_file)

    return config


def _parse_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """
    JSON does not know tuples, so a bivariate `fwhm` (or a `pos`) will
    be a list; convert these back to tuples.
    """

    return {
        key: tuple(value) if isinstance(value, list) else value
        for key, value in params.items()
    }


def get_fit_options(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn a fit configuration (e.g., as loaded with `load_config()`) into
    keyword arguments for :func:`lazypsf.fitting.fit`. A configuration
    looks like this:

    .. code-block:: json

        {
          "model": "moffat",
          "params": {"x": 12, "y": 13, "fwhm": [3.0, 2.5], "amp": 1},
          "frozen_params": {"alpha": 2},
          "loss": "l2",
          "max_fwhm": 10,
          "method": "trust-exact",
          "options": {"maxiter": 500}
        }

    Only "model" and "params" are required.

    Args:
        config: A dictionary containing the fit configuration.

    Returns:
        A dictionary with the keyword arguments for `fit()` (except for
        the `image`).
    """

    # Check for missing or unknown keys
    for key in ('model', 'params'):
        if key not in config:
            raise ValueError(f'Fit configuration is missing "{key}"!')
    if unknown := sorted(set(config) - set(FIT_OPTIONS)):
        raise ValueError(f'Unknown fit options: {unknown}!')

    # Resolve the model, the parameters and the loss
    options = dict(config)
    options['model'] = get_model(config['model'])
    options['params'] = _parse_params(config['params'])
    if 'frozen_params' in config:
        options['frozen_params'] = _parse_params(config['frozen_params'])
    if 'max_fwhm' in config and isinstance(config['max_fwhm'], list):
        options['max_fwhm'] = tuple(config['max_fwhm'])
    if 'loss' in config:
        try:
            options['loss'] = LOSSES[config['loss']]
        except KeyError:
            raise ValueError(f'loss must be one of {sorted(LOSSES)}!')

    return options
