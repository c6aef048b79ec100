"""
Transports backed by external cloud services.
"""

__all__ = ['ses']
