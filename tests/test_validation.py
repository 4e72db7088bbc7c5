"""Tests for configuration and frame validation."""

import numpy as np

from screensync.core.model import DetectionConfig
from screensync.core.validation import ValidationResult, validate_config, validate_frames


class TestValidationResult:
    """Test suite for ValidationResult."""

    def test_success_is_truthy(self) -> None:
        result = ValidationResult.success()
        assert result
        assert result.errors == []

    def test_failure_is_falsy(self) -> None:
        result = ValidationResult.failure("a", "b")
        assert not result
        assert result.errors == ["a", "b"]


class TestValidateConfig:
    """Test suite for validate_config."""

    def test_defaults_are_valid(self) -> None:
        assert validate_config(DetectionConfig()).valid

    def test_without_delays_is_valid(self) -> None:
        config = DetectionConfig().without_delays()
        assert config.settle_sec == 0.0
        assert config.cooldown_sec == 0.0
        assert validate_config(config).valid

    def test_each_violation_is_reported(self) -> None:
        config = DetectionConfig(
            capture_count=0,
            flash_sec=-1.0,
            morphology_kernel=4,
            blur_radius=0,
            animation_fps=0.0,
        )
        result = validate_config(config)
        assert not result.valid
        assert len(result.errors) == 5
        joined = " ".join(result.errors)
        for name in ("capture_count", "flash_sec", "morphology_kernel", "blur_radius", "animation_fps"):
            assert name in joined

    def test_area_bounds_must_be_ordered(self) -> None:
        config = DetectionConfig(min_normalized_area=0.7, max_normalized_area=0.65)
        assert not validate_config(config).valid

    def test_peak_fraction_must_be_a_share(self) -> None:
        for value in (0.0, 1.0, 1.5):
            result = validate_config(DetectionConfig(peak_fraction=value))
            assert not result.valid
            assert "peak_fraction" in result.errors[0]

    def test_replace_returns_modified_copy(self) -> None:
        base = DetectionConfig()
        changed = base.replace(min_blob_size=99)
        assert changed.min_blob_size == 99
        assert base.min_blob_size != 99


class TestValidateFrames:
    """Test suite for validate_frames."""

    def test_matching_rgba_frames(self) -> None:
        frames = [np.zeros((4, 5, 4), dtype=np.uint8)] * 3
        assert validate_frames(frames).valid

    def test_no_frames(self) -> None:
        assert not validate_frames([]).valid

    def test_not_rgba(self) -> None:
        assert not validate_frames([np.zeros((4, 5, 3), dtype=np.uint8)]).valid

    def test_shape_mismatch(self) -> None:
        result = validate_frames([
            np.zeros((4, 5, 4), dtype=np.uint8),
            np.zeros((4, 6, 4), dtype=np.uint8),
        ])
        assert not result.valid
        assert "Frame 1" in result.errors[0]
