"""
Storage backends for alert event history.
"""

from sysalert.alerts.storage.base_storage import BaseStorage, EventRecord

__all__ = ['BaseStorage', 'EventRecord']
