"""Core signal logic: indicators, timeframe analysis and confluence scoring.

This package contains pure business logic with no I/O dependencies
(no network, no files). It is consumed by the live ticker (ticker/),
which owns price retrieval, the trade log and the refresh loop.
"""
