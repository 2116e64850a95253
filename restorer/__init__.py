"""
Batch restore of course backups into their categories.
"""

from .config import RestoreConfig, RestoreSettings
from .database_storage import DatabaseStorage
from .models import RestoreOutcome, CategoryStatus, RunResult, ItemResult
from .orchestrator import RestoreOrchestrator

__all__ = [
    'RestoreConfig',
    'RestoreSettings',
    'DatabaseStorage',
    'RestoreOutcome',
    'CategoryStatus',
    'RunResult',
    'ItemResult',
    'RestoreOrchestrator'
]
