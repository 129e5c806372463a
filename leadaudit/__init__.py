"""
Lead Audit — multi-signal website audit engine.

    audit = await run_audit("acme-plumbing.com")
"""

from leadaudit.pipeline.orchestrator import AuditOrchestrator, run_audit  # noqa: F401

__version__ = "1.0.0"
