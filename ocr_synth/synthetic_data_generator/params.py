"""Resolution of `RangeOrFixed` parameters into concrete values."""

import numpy as np

from ocr_synth.config.schemas import RangeOrFixed


def resolve(param: RangeOrFixed, rng: np.random.Generator) -> float:
    """Resolves a parameter into a concrete number for one sample.

    A fixed parameter always yields `param.fixed` and leaves `rng` untouched.
    A ranged parameter yields `rng.random() * (max - min) + min`, i.e. a
    uniform value in `[min, max)`. The bounds are not validated: with
    `min > max` the same arithmetic yields a value in `(max, min]`.

    Args:
        param: The parameter to resolve.
        rng: The random generator owned by the calling sample.

    Returns:
        float: The resolved value.
    """
    if not param.use_range:
        return float(param.fixed)
    return float(rng.random() * (param.max - param.min) + param.min)
