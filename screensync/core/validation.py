"""Configuration and input validation utilities.

Checks the detection configuration before an engine starts, so a bad
tunable is reported up front instead of failing halfway through a scan.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .model import DetectionConfig


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes:
        valid: True if validation passed
        errors: List of error messages if validation failed
    """

    valid: bool
    errors: list[str]

    @classmethod
    def success(cls) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(valid=True, errors=[])

    @classmethod
    def failure(cls, *errors: str) -> "ValidationResult":
        """Create a failed validation result with error messages."""
        return cls(valid=False, errors=list(errors))

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.valid


def validate_config(config: DetectionConfig) -> ValidationResult:
    """Validate every tunable of a detection configuration.

    Args:
        config: Configuration to check

    Returns:
        ValidationResult listing every violated constraint
    """
    errors: list[str] = []

    if config.capture_count < 1:
        errors.append(f"capture_count must be >= 1 (got {config.capture_count})")

    for name in (
        "settle_sec",
        "reference_interval_sec",
        "probe_interval_sec",
        "flash_sec",
        "cooldown_sec",
    ):
        value = getattr(config, name)
        if value < 0:
            errors.append(f"{name} must not be negative (got {value})")

    if config.blur_radius < 1:
        errors.append(f"blur_radius must be >= 1 (got {config.blur_radius})")

    if config.morphology_kernel < 1 or config.morphology_kernel % 2 == 0:
        errors.append(
            f"morphology_kernel must be a positive odd integer (got {config.morphology_kernel})"
        )

    if config.min_blob_size < 1:
        errors.append(f"min_blob_size must be >= 1 (got {config.min_blob_size})")

    if not 0 < config.min_normalized_area <= config.max_normalized_area <= 1:
        errors.append(
            "normalized area bounds must satisfy 0 < min <= max <= 1 "
            f"(got {config.min_normalized_area}, {config.max_normalized_area})"
        )

    if config.brightness_threshold < 0:
        errors.append(f"brightness_threshold must not be negative (got {config.brightness_threshold})")

    if config.threshold_std_multiplier < 0:
        errors.append(
            f"threshold_std_multiplier must not be negative (got {config.threshold_std_multiplier})"
        )

    if not 0 < config.peak_fraction < 1:
        errors.append(f"peak_fraction must be in (0, 1) (got {config.peak_fraction})")

    if config.edge_padding < 0:
        errors.append(f"edge_padding must not be negative (got {config.edge_padding})")

    if config.animation_fps <= 0:
        errors.append(f"animation_fps must be positive (got {config.animation_fps})")

    if config.canvas_size < 1:
        errors.append(f"canvas_size must be >= 1 (got {config.canvas_size})")

    if config.color_change_threshold < 0:
        errors.append(
            f"color_change_threshold must not be negative (got {config.color_change_threshold})"
        )

    if errors:
        return ValidationResult.failure(*errors)
    return ValidationResult.success()


def validate_frames(frames: Sequence[np.ndarray]) -> ValidationResult:
    """Check that frames exist and share one RGBA geometry."""
    if len(frames) == 0:
        return ValidationResult.failure("No frames given")

    errors: list[str] = []
    first = frames[0]
    if first.ndim != 3 or first.shape[2] != 4:
        errors.append(f"Frames must be (height, width, 4) RGBA, got {first.shape}")

    for i, frame in enumerate(frames[1:], start=1):
        if frame.shape != first.shape:
            errors.append(f"Frame {i} shape {frame.shape} differs from {first.shape}")

    if errors:
        return ValidationResult.failure(*errors)
    return ValidationResult.success()
