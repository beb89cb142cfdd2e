"""
crewbase - workforce backend: accounts, companies and notifications.
"""

__version__ = "0.1.0"
