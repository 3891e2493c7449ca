"""Positions book for a perpetual futures market, stored in paged slot memory."""

__version__ = "0.1.0"