"""
Audit logging for security-critical and money-moving operations.

One JSON line per event on the "audit" logger, so it can be shipped or grepped
separately from application logs. Passwords and tokens are never logged.
"""
import logging
import json
from datetime import datetime, timezone
from typing import Any, Optional, Dict
from cannaclub.models.user import User

# Separate logger for audit events
audit_logger = logging.getLogger("audit")


def _emit(level: int, entry: Dict[str, Any]) -> None:
    entry = {"timestamp": datetime.now(timezone.utc).isoformat(), **entry}
    # Decimal amounts and dates are written as strings
    audit_logger.log(level, json.dumps(entry, default=str, ensure_ascii=False))


class AuditLog:
    """Central audit logging for security-critical events."""

    @staticmethod
    def log_authentication(
        action: str,  # "login", "logout", "failed_login"
        username: str,
        ip_address: str,
        success: bool,
        reason: str = "",
    ):
        """
        Log authentication events.

        Usage:
            AuditLog.log_authentication("login", "admin", "192.168.1.1", True)
            AuditLog.log_authentication("failed_login", "admin", "192.168.1.1", False, reason="Invalid password")
        """
        entry = {
            "event_type": f"auth.{action}",
            "username": username,
            "ip_address": ip_address,
            "success": success,
        }
        if reason and not success:
            entry["reason"] = reason
        _emit(logging.INFO if success else logging.WARNING, entry)

    @staticmethod
    def log_action(
        action: str,  # "create", "delete", "update", "open", "close", "deposit", "withdraw"
        resource_type: str,  # "dispensary", "register", "cash_transaction", "wallet", "member", "product", "user"
        resource_id: Optional[int],
        user: User,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Log business-critical actions: who did what to which record, and the values involved.

        Usage:
            AuditLog.log_action("open", "register", 12, current_user, changes={"opening_amount": "100.00"})
            AuditLog.log_action("delete", "dispensary", 456, current_user, changes={"price": "17.00"})
        """
        entry = {
            "event_type": f"{resource_type}.{action}",
            "user_id": user.id,
            "username": user.username,
            "resource_id": resource_id,
        }
        if changes:
            entry["changes"] = changes
        _emit(logging.INFO, entry)

    @staticmethod
    def log_access_denied(
        action: str,
        resource: str,
        user_id: int,
        reason: str,
    ):
        """
        Log denied access attempts, e.g. a non-admin calling user management.

        Usage:
            AuditLog.log_access_denied("POST", "/users", 2, "Not an administrator")
        """
        _emit(logging.WARNING, {
            "event_severity": "WARNING",
            "event_type": "access_denied",
            "action": action,
            "resource": resource,
            "user_id": user_id,
            "reason": reason,
        })
