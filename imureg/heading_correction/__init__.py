"""Remove the common heading offset of all sensors attached to one rigid harness."""
from imureg.heading_correction._heading_correction import (
    HeadingCorrection,
    apply_heading_correction,
    find_heading_correction,
)

__all__ = ["HeadingCorrection", "apply_heading_correction", "find_heading_correction"]
