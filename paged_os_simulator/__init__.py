"""
Paged OS simulator: a single-CPU process scheduler coupled to a paged memory manager.
"""

__version__ = "0.1.0"
