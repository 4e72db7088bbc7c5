"""Morphological operations on binary masks.

Square ``kernel_size`` x ``kernel_size`` windows. Out-of-frame
neighbours are replaced by the nearest edge pixel.
"""

import cv2
import numpy as np


def _structuring_element(kernel_size: int) -> np.ndarray:
    if kernel_size < 1 or kernel_size % 2 == 0:
        raise ValueError(f"Kernel size must be a positive odd integer, got {kernel_size}")
    return np.ones((kernel_size, kernel_size), dtype=np.uint8)


def dilate(mask: np.ndarray, kernel_size: int) -> np.ndarray:
    """Max over a ``kernel_size`` x ``kernel_size`` neighbourhood."""
    element = _structuring_element(kernel_size)
    return cv2.dilate(mask, element, borderType=cv2.BORDER_REPLICATE)


def erode(mask: np.ndarray, kernel_size: int) -> np.ndarray:
    """Min over a ``kernel_size`` x ``kernel_size`` neighbourhood."""
    element = _structuring_element(kernel_size)
    return cv2.erode(mask, element, borderType=cv2.BORDER_REPLICATE)


def close_mask(mask: np.ndarray, kernel_size: int) -> np.ndarray:
    """Morphological closing: dilate, then erode.

    Merges fragments of one screen split by glare or bezel reflections.
    """
    return erode(dilate(mask, kernel_size), kernel_size)
