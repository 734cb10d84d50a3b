"""
REST API and live dashboard feed.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from netmeta.ui.server import create_app

__all__ = ["create_app"]
