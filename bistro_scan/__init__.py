"""
Bistro Scan: barcode decoding and order matching for restaurant hand-off.
"""

__version__ = "1.0.0"
