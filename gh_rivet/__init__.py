"""Rivet - terminal browser for grouped GitHub Actions workflows."""

__version__ = "0.4.0"
