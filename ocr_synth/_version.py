"""Defines the version of the ocr_synth package.

This module contains a single dunder variable, `__version__`, which is used
by packaging tools and is also exposed at the top level of the package.
"""

__version__ = "0.1.0"
