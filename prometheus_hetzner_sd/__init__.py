"""
Prometheus service discovery for servers hosted on Hetzner.

Polls the Hetzner Robot API and keeps a file for Prometheus' file-based
service discovery up to date.
"""

__version__ = "1.0.0"
