"""
trickfish
Fishing tournament eligibility, capture validation, scoring and ranking engine.
"""

__version__ = "1.0.0"
