"""HTTP service that stores people and enriches them with predicted age, sex and nationality."""

__version__ = "1.0.0"