"""
netmeta - Routing Session Monitoring and Auto-Remediation

Tracks live BGP peer sessions, OSPF link-state topology and MPLS label
stacks, and triggers corrective actions when anomalies exceed configured
thresholds.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

__version__ = "0.1.0"
__author__ = "DNS Science.io"
__copyright__ = "Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company"
