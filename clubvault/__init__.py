"""Club vault: hierarchical multi-tenant file storage with quota, trash and export."""

__version__ = "0.1.0"
