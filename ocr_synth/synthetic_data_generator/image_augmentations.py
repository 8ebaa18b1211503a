"""Image distortion functions for the synthetic data generator.

This module provides the geometric and photometric distortions applied to a
composed canvas, and `apply_distortions`, which runs them in a fixed order:
blur, perspective warp, skew, rotation, Gaussian noise, salt-and-pepper noise
and finally rescale. Each step runs only when its resolved magnitude is above
a near-zero threshold. Distortions are best effort: if any step fails, the
pipeline returns an unmodified copy of its input.
"""

import math

import cv2
import numpy as np
from loguru import logger

from ocr_synth.config.schemas import GenerationSettings
from ocr_synth.synthetic_data_generator.params import resolve

MIN_BLUR_KERNEL = 3
ANGLE_THRESHOLD = 0.1
"""Skew and rotation angles at or below this magnitude (degrees) are skipped."""

WARP_OFFSET_RATIO = 0.1


def apply_blur(image, radius):
    """Applies Gaussian blur to an image.

    The kernel size is `2 * radius` truncated to an integer and forced odd.
    Kernels smaller than 3 leave the image unchanged.

    Args:
        image (np.ndarray): The input image.
        radius (float): The blur radius, also used as the Gaussian sigma.

    Returns:
        np.ndarray: The blurred image.
    """
    kernel_size = int(radius * 2) | 1
    if kernel_size < MIN_BLUR_KERNEL:
        return image
    return cv2.GaussianBlur(image, (kernel_size, kernel_size), radius)


def apply_perspective_transform(image, strength, rng):
    """Applies a random perspective warp that pulls the corners inward.

    Each corner is displaced on both axes by an independent offset in
    `[0, strength * min(width, height) * 0.1)`, towards the inside of the
    canvas. The output keeps the input size.

    Args:
        image (np.ndarray): The input image.
        strength (float): The warp strength.
        rng (np.random.Generator): The random generator of the sample.

    Returns:
        np.ndarray: The warped image.
    """
    height, width = image.shape[:2]
    max_offset = strength * min(width, height) * WARP_OFFSET_RATIO

    def offset():
        return rng.random() * max_offset

    src = np.float32([[0, 0], [width, 0], [width, height], [0, height]])
    dst = np.float32([
        [offset(), offset()],
        [width - offset(), offset()],
        [width - offset(), height - offset()],
        [offset(), height - offset()],
    ])

    M = cv2.getPerspectiveTransform(src, dst)
    return cv2.warpPerspective(image, M, (width, height))


def apply_skew(image, angle):
    """Shears the image horizontally by `angle` degrees.

    Content sheared past the edges is clipped, like a skewed scan.
    """
    height, width = image.shape[:2]
    shear = math.tan(math.radians(angle))
    M = np.float64([[1, shear, 0], [0, 1, 0]])
    return cv2.warpAffine(image, M, (width, height))


def apply_rotation(image, angle):
    """Rotates the image about its center by `angle` degrees, keeping its size."""
    height, width = image.shape[:2]
    M = cv2.getRotationMatrix2D((width / 2.0, height / 2.0), angle, 1.0)
    return cv2.warpAffine(image, M, (width, height))


def apply_gaussian_noise(image, intensity, rng):
    """Adds Gaussian noise with a standard deviation of `intensity * 255`.

    The noise is drawn into an image of the same 8-bit type, so negative
    draws saturate to zero and the noise can only brighten pixels. The sum
    saturates at 255.
    """
    noise = np.rint(rng.normal(0.0, intensity * 255, size=image.shape))
    noise = np.clip(noise, 0, 255).astype(np.uint8)
    return cv2.add(image, noise)


def apply_salt_and_pepper_noise(image, intensity, rng):
    """Sets random pixels to pure white or pure black.

    The number of sites is `intensity * width * height * channels`. Each site
    is a uniformly random pixel set to white or black with equal probability.
    Sites may coincide, so fewer distinct pixels can be affected.

    Args:
        image (np.ndarray): The input image.
        intensity (float): The fraction of sites to corrupt.
        rng (np.random.Generator): The random generator of the sample.

    Returns:
        np.ndarray: A noisy copy of the image.
    """
    result = image.copy()
    height, width = image.shape[:2]
    channels = image.shape[2] if image.ndim == 3 else 1
    num_sites = int(width * height * channels * intensity)
    if num_sites <= 0:
        return result

    xs = rng.integers(0, width, num_sites)
    ys = rng.integers(0, height, num_sites)
    values = np.where(rng.random(num_sites) > 0.5, 255, 0).astype(image.dtype)
    if result.ndim == 3:
        values = values[:, None]
    result[ys, xs] = values
    return result


def apply_rescale(image, target_height):
    """Resizes the image to `target_height`, preserving its aspect ratio.

    Uses bilinear interpolation. A non-positive target or a target equal to
    the current height leaves the image unchanged.
    """
    height, width = image.shape[:2]
    if target_height <= 0 or target_height == height:
        return image
    target_width = max(1, int(round(width * target_height / float(height))))
    return cv2.resize(image, (target_width, target_height), interpolation=cv2.INTER_LINEAR)


def apply_distortions(image, settings: GenerationSettings, rng):
    """Runs the distortion pipeline on a composed canvas.

    Args:
        image (np.ndarray): The composed canvas.
        settings (GenerationSettings): The generation settings.
        rng (np.random.Generator): The random generator of the sample.

    Returns:
        np.ndarray: The distorted image, or an unmodified copy of `image` if
        any step raised.
    """
    try:
        result = image.copy()

        blur_radius = resolve(settings.blur_radius, rng)
        if blur_radius > 0:
            result = apply_blur(result, blur_radius)

        warp_strength = resolve(settings.warp_strength, rng)
        if warp_strength > 0:
            result = apply_perspective_transform(result, warp_strength, rng)

        skew_angle = resolve(settings.skew_angle, rng)
        if abs(skew_angle) > ANGLE_THRESHOLD:
            result = apply_skew(result, skew_angle)

        rotation_angle = resolve(settings.rotation_angle, rng)
        if abs(rotation_angle) > ANGLE_THRESHOLD:
            result = apply_rotation(result, rotation_angle)

        gaussian_noise = resolve(settings.gaussian_noise, rng)
        if gaussian_noise > 0:
            result = apply_gaussian_noise(result, gaussian_noise, rng)

        salt_pepper = resolve(settings.salt_pepper_noise, rng)
        if salt_pepper > 0:
            result = apply_salt_and_pepper_noise(result, salt_pepper, rng)

        # Rescale runs last so noise is generated at full resolution.
        rescaled_height = int(resolve(settings.rescaled_height, rng))
        result = apply_rescale(result, rescaled_height)

        return result
    except Exception as e:
        logger.debug(f"Distortions discarded after failure: {e}")
        return image.copy()
