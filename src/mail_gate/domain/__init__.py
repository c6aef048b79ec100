"""
Domain layer for recipient filtering.

This layer contains:
- Data models (message, recipient field union, configuration)
- The Gatekeeper (allow-list filtering and conditional delivery)
"""
