"""
obnordigen - Open Banking client for the Nordigen API
"""

__version__ = "0.1.0"
__logo__ = "🏦"
