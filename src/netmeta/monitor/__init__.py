"""
Metrics export.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from netmeta.monitor.metrics import MetricsExporter

__all__ = ["MetricsExporter"]
