"""Korean consumer-opinion research pipeline."""

__version__ = "0.1.0"
