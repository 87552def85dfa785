"""Clubscore LAN discovery: locate the LAN core via mDNS/DNS-SD."""

from .discovery import DiscoveryResult, discover

__version__ = "0.1.0"

__all__ = ["DiscoveryResult", "discover", "__version__"]
