"""mirrorfs - virtual hierarchical namespace mirrored onto a real directory."""

__version__ = "0.1.0"
