"""A package for generating synthetic OCR training data.

This package contains the image synthesis pipeline (parameter resolution,
text layout, canvas composition, distortions and compression) and the
multi-threaded orchestration that drives it across thousands of samples.
"""
