from goodcall.audit.api import router
from goodcall.audit.models import AuditLog
from goodcall.audit.service import list_audit_logs, write_audit_log

__all__ = ["router", "AuditLog", "list_audit_logs", "write_audit_log"]
