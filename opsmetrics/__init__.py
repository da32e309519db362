"""Business financial metrics engine for operations dashboards"""

__version__ = "1.0.0"
