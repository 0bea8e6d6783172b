"""racescore: heuristic race scoring, backtesting and weight calibration."""

__version__ = "0.1.0"
