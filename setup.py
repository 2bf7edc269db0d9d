"""
Setup script to install lazypsf as a Python package.
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------

from os.path import join, dirname
from setuptools import find_packages, setup


# -----------------------------------------------------------------------------
# RUN setup() FUNCTION
# -----------------------------------------------------------------------------

# Get version from VERSION file
with open(join(dirname(__file__), "lazypsf/VERSION")) as version_file:
    version = version_file.read().strip()

# Run setup()
setup(
    name='lazypsf',
    version=version,
    description='lazypsf: Lazy analytical PSF models and PSF fitting',
    python_requires='>=3.9',
    install_requires=[
        'astropy>=5.0.1',
        'jax>=0.4.34',
        'jaxlib>=0.4.34',
        'numpy>=1.21.4',
        'scipy>=1.7.3',
    ],
    extras_require={
        'develop': [
            'coverage>=6.2',
            'deepdiff>=5.6.0',
            'flake8>=4.0.1',
            'mypy>=0.920',
            'pytest>=6.2.5',
            'pytest-cov>=3.0.0',
        ],
    },
    packages=find_packages(include=['lazypsf', 'lazypsf.*']),
    package_data={'lazypsf': ['VERSION']},
    zip_safe=False,
)
