"""
Persistent stores.

- defaults: the shared seed parameter set (draft/save, reset, export/import)
- assessments: per-report assessment records with freshness tracking
"""

from spindleuq.stores.assessments import AssessmentStateStore
from spindleuq.stores.defaults import DefaultsStore

__all__ = [
    "AssessmentStateStore",
    "DefaultsStore",
]
