"""liftlog: workout sessions, set logging and live sharing."""

__version__ = "0.1.0"
