"""
lh-server: device health and telemetry reporting for an embedded camera host.
"""

__version__ = "0.3.0"
