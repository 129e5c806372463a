from leadaudit.models.audit_record import AuditRecord  # noqa: F401
