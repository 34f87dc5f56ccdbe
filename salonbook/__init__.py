"""
salonbook - appointment scheduling and slot-availability engine for salons.
"""

__version__ = "0.1.0"
