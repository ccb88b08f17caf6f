"""prattention - whose turn is it, and who owns these files?"""

__version__ = "0.1.0"
