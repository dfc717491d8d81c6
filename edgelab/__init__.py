"""Edgelab - Monte Carlo trading-outcome simulation and statistics."""

from edgelab.__version__ import __version__

__all__ = ["__version__"]
