"""
Frame Metrics Module
====================

Full-reference per-frame quality metrics.

The pipeline accepts any thread-safe callable `score(reference, distorted)
-> float`; the functions here are ready-made choices.

Features:
- PSNR (capped at 100 dB for identical frames)
- SSIM on the luma plane, scaled to 0-100
- Name-based registry for the CLI
"""

import cv2
import numpy as np
from typing import Callable, Dict
import logging

logger = logging.getLogger(__name__)

PSNR_CAP_DB = 100.0

# SSIM constants (Wang et al. 2004)
SSIM_K1 = 0.01
SSIM_K2 = 0.03
SSIM_KERNEL = (11, 11)
SSIM_SIGMA = 1.5


def peak_value(frame: np.ndarray) -> float:
    """Largest representable sample value for the frame's dtype."""
    if np.issubdtype(frame.dtype, np.integer):
        return float(np.iinfo(frame.dtype).max)
    return 1.0


def to_luma(frame: np.ndarray) -> np.ndarray:
    """Convert a BGR/BGRA or single-channel frame to float32 luma."""
    if frame.ndim == 2:
        return frame.astype(np.float32)
    channels = frame.shape[2]
    if channels == 1:
        return frame[:, :, 0].astype(np.float32)
    code = cv2.COLOR_BGRA2GRAY if channels == 4 else cv2.COLOR_BGR2GRAY
    if frame.dtype not in (np.uint8, np.uint16, np.float32):
        frame = frame.astype(np.float32)
    return cv2.cvtColor(frame, code).astype(np.float32)


def calculate_psnr(reference: np.ndarray, distorted: np.ndarray) -> float:
    """
    Peak Signal-to-Noise Ratio in dB.

    Identical frames score PSNR_CAP_DB instead of infinity so that the
    series stays plottable and the mean stays finite.
    """
    mse = np.mean((reference.astype(np.float64) - distorted.astype(np.float64)) ** 2)
    if mse == 0:
        return PSNR_CAP_DB
    peak = peak_value(reference)
    psnr = 20 * np.log10(peak / np.sqrt(mse))
    return float(min(psnr, PSNR_CAP_DB))


def calculate_ssim(reference: np.ndarray, distorted: np.ndarray) -> float:
    """
    Structural Similarity on the luma plane, scaled to 0-100.

    Uses the reference Gaussian-window formulation.
    """
    peak = peak_value(reference)
    gray1 = to_luma(reference)
    gray2 = to_luma(distorted)

    c1 = (SSIM_K1 * peak) ** 2
    c2 = (SSIM_K2 * peak) ** 2

    mu1 = cv2.GaussianBlur(gray1, SSIM_KERNEL, SSIM_SIGMA)
    mu2 = cv2.GaussianBlur(gray2, SSIM_KERNEL, SSIM_SIGMA)

    mu1_sq = mu1 * mu1
    mu2_sq = mu2 * mu2
    mu1_mu2 = mu1 * mu2

    sigma1_sq = cv2.GaussianBlur(gray1 * gray1, SSIM_KERNEL, SSIM_SIGMA) - mu1_sq
    sigma2_sq = cv2.GaussianBlur(gray2 * gray2, SSIM_KERNEL, SSIM_SIGMA) - mu2_sq
    sigma12 = cv2.GaussianBlur(gray1 * gray2, SSIM_KERNEL, SSIM_SIGMA) - mu1_mu2

    ssim_map = ((2 * mu1_mu2 + c1) * (2 * sigma12 + c2)) / (
        (mu1_sq + mu2_sq + c1) * (sigma1_sq + sigma2_sq + c2)
    )
    return float(ssim_map.mean()) * 100.0


METRICS: Dict[str, Callable[[np.ndarray, np.ndarray], float]] = {
    "psnr": calculate_psnr,
    "ssim": calculate_ssim,
}


def get_metric(name: str) -> Callable[[np.ndarray, np.ndarray], float]:
    """Look up a metric function by name."""
    try:
        return METRICS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown metric '{name}'. Available: {', '.join(sorted(METRICS))}"
        ) from None
