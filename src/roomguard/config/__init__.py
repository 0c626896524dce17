"""Configuration helpers: environment parsing and detection thresholds."""
