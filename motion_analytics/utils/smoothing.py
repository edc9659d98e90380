"""Smoothing and filtering utilities for pose-derived signals.

This module provides the temporal filtering used by the motion calculator:
- Scalar Kalman filtering of per-axis centroid displacement
- A damped two-axis displacement filter that favours responsiveness
- Savitzky-Golay filtering for batch signal smoothing
- Outlier detection and removal
"""

import numpy as np
from scipy.signal import savgol_filter
from scipy.stats import zscore


class KalmanFilter1D:
    """Scalar Kalman filter with an explicit "no prior state" flag.

    Attributes:
        process_noise: Process noise variance (Q).
        measurement_noise: Measurement noise variance (R).
        estimate: Current state estimate.
        error_covariance: Current error covariance.
        has_prior_state: False until the first measurement seeds the state.
    """

    def __init__(
        self,
        process_noise: float = 0.01,
        measurement_noise: float = 5.0,
        initial_covariance: float = 1.0,
    ):
        """Initialize Kalman filter.

        Args:
            process_noise: Process noise variance (Q). Lower = trust model more.
            measurement_noise: Measurement noise variance (R). Lower = trust measurements more.
            initial_covariance: Error covariance used until the first update.
        """
        self.process_noise = process_noise
        self.measurement_noise = measurement_noise
        self.initial_covariance = initial_covariance
        self.estimate = 0.0
        self.error_covariance = initial_covariance
        self.has_prior_state = False

    def update(self, measurement: float) -> float:
        """Update filter with new measurement.

        The first measurement seeds the estimate and is returned unchanged.

        Args:
            measurement: New observed value.

        Returns:
            Filtered state estimate.
        """
        if not self.has_prior_state:
            self.estimate = measurement
            self.has_prior_state = True
            return measurement

        # Prediction step
        prediction = self.estimate
        prediction_error = self.error_covariance + self.process_noise

        # Update step
        kalman_gain = prediction_error / (prediction_error + self.measurement_noise)
        self.estimate = prediction + kalman_gain * (measurement - prediction)
        self.error_covariance = (1 - kalman_gain) * prediction_error

        return self.estimate

    def reset(self):
        """Reset filter to its initial state."""
        self.estimate = 0.0
        self.error_covariance = self.initial_covariance
        self.has_prior_state = False


class DisplacementFilter:
    """Damped Kalman smoothing of frame-to-frame (dx, dy) displacement.

    Each axis runs its own KalmanFilter1D. The returned displacement blends
    ``raw_weight`` of the raw measurement with the remainder of the filtered
    estimate, so detection jitter is damped without lagging real movement.
    """

    def __init__(
        self,
        process_noise: float = 0.01,
        measurement_noise: float = 5.0,
        raw_weight: float = 0.7,
    ):
        if not 0.0 <= raw_weight <= 1.0:
            raise ValueError(f"raw_weight must be in [0, 1], got {raw_weight}")

        self.raw_weight = raw_weight
        self.x = KalmanFilter1D(process_noise, measurement_noise)
        self.y = KalmanFilter1D(process_noise, measurement_noise)

    @property
    def has_prior_state(self) -> bool:
        return self.x.has_prior_state

    def update(self, dx: float, dy: float) -> tuple[float, float]:
        """Filter one displacement sample.

        Args:
            dx: Raw horizontal displacement.
            dy: Raw vertical displacement.

        Returns:
            Smoothed (dx, dy). The first sample is passed through unchanged.
        """
        if not self.has_prior_state:
            self.x.update(dx)
            self.y.update(dy)
            return dx, dy

        x_estimate = self.x.update(dx)
        y_estimate = self.y.update(dy)
        filtered_weight = 1.0 - self.raw_weight

        return (
            dx * self.raw_weight + x_estimate * filtered_weight,
            dy * self.raw_weight + y_estimate * filtered_weight,
        )

    def reset(self):
        """Reset both axes."""
        self.x.reset()
        self.y.reset()


def smooth_signal_savgol(
    signal: np.ndarray,
    window_length: int = 11,
    polyorder: int = 3,
    axis: int = 0,
) -> np.ndarray:
    """Savitzky-Golay smoothing of a batch series (e.g. COM height over a window).

    Series shorter than ``window_length`` come back untouched. An even window
    is widened by one, then clipped to the longest odd window the series allows.
    """
    n_samples = len(signal)
    if n_samples < window_length:
        return signal

    window = window_length | 1
    if window > n_samples:
        window = n_samples if n_samples % 2 else n_samples - 1

    return savgol_filter(signal, window, min(polyorder, window - 1), axis=axis)


def detect_outliers_zscore(signal: np.ndarray, threshold: float = 3.0) -> np.ndarray:
    """Mask samples whose absolute z-score exceeds ``threshold``.

    Series with fewer than three samples, or with no spread, have no outliers.
    """
    if len(signal) < 3 or np.allclose(signal, signal[0]):
        return np.zeros(len(signal), dtype=bool)

    return np.abs(zscore(signal, nan_policy="omit")) > threshold


def detect_outliers_iqr(signal: np.ndarray, factor: float = 1.5) -> np.ndarray:
    """Mask samples outside the Tukey fences ``[Q1 - factor*IQR, Q3 + factor*IQR]``."""
    if len(signal) < 3:
        return np.zeros(len(signal), dtype=bool)

    q1, q3 = np.percentile(signal, [25, 75])
    spread = factor * (q3 - q1)
    return (signal < q1 - spread) | (signal > q3 + spread)


OUTLIER_DETECTORS = {
    "zscore": detect_outliers_zscore,
    "iqr": detect_outliers_iqr,
}


def remove_outliers(
    signal: np.ndarray,
    method: str = "zscore",
    threshold: float = 3.0,
    interpolate: bool = True,
) -> np.ndarray:
    """Replace outlying samples of a 1D series.

    Args:
        signal: Series to clean.
        method: Key of OUTLIER_DETECTORS.
        threshold: z-score limit, or IQR factor for "iqr".
        interpolate: Fill outliers linearly from their inlier neighbours;
            otherwise mark them NaN.

    Returns:
        Cleaned copy of the series.

    Raises:
        ValueError: If the method is unknown.
    """
    if method not in OUTLIER_DETECTORS:
        raise ValueError(f"Unknown outlier method '{method}', expected one of {list(OUTLIER_DETECTORS)}")

    values = np.asarray(signal, dtype=float)
    mask = OUTLIER_DETECTORS[method](values, threshold)
    cleaned = values.copy()

    if not interpolate:
        cleaned[mask] = np.nan
        return cleaned

    inliers = np.flatnonzero(~mask)
    if len(inliers) > 1:
        cleaned[mask] = np.interp(np.flatnonzero(mask), inliers, values[inliers])
    return cleaned
