"""Connected-component extraction over a binary mask."""

from typing import Optional

import cv2
import numpy as np

from .model import Blob


def _label_mask(mask: np.ndarray) -> tuple[np.ndarray, np.ndarray, list[int]]:
    """Label 4-connected components of mask == 255.

    Returns:
        (labels, areas, order): the label image, the pixel count of every
        label, and the component labels sorted by the row-major position
        of their first pixel
    """
    lit = (mask == 255).astype(np.uint8)
    count, labels, stats, _ = cv2.connectedComponentsWithStats(lit, connectivity=4)
    if count <= 1:
        return labels, stats[:, cv2.CC_STAT_AREA], []

    # Label numbering is not guaranteed to follow scan order
    present, first_index = np.unique(labels.ravel(), return_index=True)
    order = [int(label) for label in present[np.argsort(first_index)] if label != 0]
    return labels, stats[:, cv2.CC_STAT_AREA], order


def _blob(labels: np.ndarray, label: int) -> Blob:
    ys, xs = np.nonzero(labels == label)
    return Blob(xs=xs.astype(np.int64), ys=ys.astype(np.int64))


def find_blobs(mask: np.ndarray) -> list[Blob]:
    """Find every 4-connected component of mask == 255.

    Components are returned in row-major order of their first pixel.
    """
    labels, _, order = _label_mask(mask)
    return [_blob(labels, label) for label in order]


def find_largest_blob(mask: np.ndarray) -> Optional[Blob]:
    """Return the component with the most pixels, None if the mask is empty.

    On a tie the component found first wins.
    """
    labels, areas, order = _label_mask(mask)
    if not order:
        return None

    largest = order[0]
    for label in order[1:]:
        if areas[label] > areas[largest]:
            largest = label
    return _blob(labels, largest)
