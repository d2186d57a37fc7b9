"""
Portfolio Risk Statistics

Portfolio volatility, rolling volatility and risk decomposition computed from
asset price histories. Pure computation on pandas DataFrames and numpy arrays;
price acquisition and presentation live outside this package.
"""

__version__ = "0.1.0"
