"""
Notebook job-dispatch gateway.

Authenticated HTTP endpoints that verify resource ownership, forward job
requests to external processors and track the resulting status on notebooks
and sources.
"""

__version__ = "0.1.0"
