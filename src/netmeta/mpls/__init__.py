"""
MPLS label stack validation.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from netmeta.mpls.validator import (
    Label,
    LabelStack,
    LabelStackValidator,
    MIN_LABEL_VALUE,
    MAX_LABEL_VALUE,
)

__all__ = [
    "Label",
    "LabelStack",
    "LabelStackValidator",
    "MIN_LABEL_VALUE",
    "MAX_LABEL_VALUE",
]
