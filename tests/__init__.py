"""The tests package for the ocr_synth project.

This package contains the unit and integration tests for the `ocr_synth`
package. The tests are written using the `pytest` framework and cover the
sample pipeline (layout, composition, distortions and compression), the
multi-threaded dataset generator, the batch runner and the configuration
layer.
"""
