"""opkit: release packaging for cross-platform desktop applications."""

__version__ = "0.1.0"
