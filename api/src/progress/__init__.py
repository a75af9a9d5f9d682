"""Student progress tracking module.

Provides:
- Resource progress with module/course completion cascade
- Achievement gating for module and course completion
- Certificate eligibility
- Course enrollment management
"""

from .models import (
    PROGRESS_TABLES_CQL,
    Certificate,
    Enrollment,
    ModuleProgress,
    ResourceProgress,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "Certificate",
    "Enrollment",
    "ModuleProgress",
    "ResourceProgress",
]
