"""Synchronize a CardDAV address book into a Fritz!Box phonebook."""

from .contact import ContactRecord, Email, GroupDefinition, Telephone
from .filters import FilterRuleSet, apply_filters
from .groups import dissolve_groups
from .pipeline import PipelineResult, run_pipeline

__version__ = "0.1.0"

__all__ = [
    "ContactRecord",
    "Email",
    "GroupDefinition",
    "Telephone",
    "FilterRuleSet",
    "apply_filters",
    "dissolve_groups",
    "PipelineResult",
    "run_pipeline",
]
