"""Deterministic calculators: income normalization and poverty-line thresholds."""
