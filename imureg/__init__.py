"""Register wearable IMUs onto a biomechanical body model and correct their common heading."""

__version__ = "0.1.0"
