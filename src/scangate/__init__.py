"""scangate - promote container images only after a clean vulnerability scan."""

__version__ = "0.3.0"
