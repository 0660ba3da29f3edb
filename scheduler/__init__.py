"""Background calibration jobs for the recovery engine."""
