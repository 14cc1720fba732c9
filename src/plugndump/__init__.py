"""Plug-N-Dump - blackbox log extraction for serial flight controllers."""

__version__ = "0.1.0"
