"""Normalize orientation and marker time series into the common table format and store orientation tables."""
from imureg.ingest._orientation_ingest import normalize_quaternions, to_marker_table, to_orientation_table
from imureg.ingest._table_io import load_orientation_table, save_orientation_table

__all__ = [
    "normalize_quaternions",
    "to_orientation_table",
    "to_marker_table",
    "save_orientation_table",
    "load_orientation_table",
]
