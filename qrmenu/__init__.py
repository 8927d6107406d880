"""
                QR Menu Ordering Service

Backend for table-side ordering: customers scan a table's QR code,
browse the menu and place orders that staff move through the kitchen
lifecycle.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
