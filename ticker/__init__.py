"""Live ticker: price feed clients, trade log and the refresh loop.

Uses signal_core for all indicator and scoring logic.
"""
