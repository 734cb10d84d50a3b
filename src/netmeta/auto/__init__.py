"""
Automatic and manual remediation.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from netmeta.auto.engine import (
    EventLedger,
    EventType,
    RemediationEngine,
    RemediationEvent,
    MAX_LEDGER_EVENTS,
)

__all__ = [
    "EventLedger",
    "EventType",
    "RemediationEngine",
    "RemediationEvent",
    "MAX_LEDGER_EVENTS",
]
