"""
SiteAudit package initializer.
Defines package version and exposes CLI.
"""
__version__ = "0.1.0"

__all__ = ["__version__"]
