"""Training load, form zone and training phase engine."""

__version__ = "0.1.0"
