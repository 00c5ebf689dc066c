"""CivicPulse: API backend for a civic-transparency dashboard"""

__version__ = "1.0.0"
