"""Temperature-driven control of a USB fan controller."""

__version__ = "0.1.0"
