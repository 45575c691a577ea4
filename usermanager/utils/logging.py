"""
Structured Logging Configuration for User Management API
Structured JSON logging in production, console rendering elsewhere.

What NOT to log: passwords, tokens, full email addresses of login attempts.
"""

import logging
import sys
from typing import Any, Dict

import structlog
from structlog.processors import JSONRenderer
from structlog.stdlib import add_log_level, add_logger_name

from usermanager.config.settings import get_settings

settings = get_settings()


def setup_logging() -> None:
    """
    Configure structured logging with JSON output.
    """
    structlog.configure(
        processors=[
            # Merge request-scoped context (trace ids)
            structlog.contextvars.merge_contextvars,
            add_log_level,
            add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL),
    )

    # Silence noisy loggers in production
    if settings.is_production:
        logging.getLogger("uvicorn").setLevel(logging.WARNING)
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("fastapi").setLevel(logging.WARNING)


def sanitize_email(email: str = None) -> str:
    """Reduce an email address to its domain for audit records."""
    if not email:
        return None
    return f"***@{email.split('@')[-1]}" if "@" in email else "***"


class SecurityAuditLogger:
    """
    Security-focused logging for audit trails.
    """

    def __init__(self):
        self.logger = structlog.get_logger("security.audit")

    def log_authentication_attempt(
        self,
        user_id: str = None,
        email: str = None,
        success: bool = False,
        reason: str = None,
        ip_address: str = None,
    ) -> None:
        """Log login attempts and token verification failures."""
        self.logger.info(
            "Authentication attempt",
            event_type="auth_attempt",
            user_id=user_id,
            email=sanitize_email(email),
            success=success,
            failure_reason=reason if not success else None,
            client_ip=ip_address,
        )

    def log_authorization_failure(
        self,
        user_id: str,
        role: str,
        required_roles: Any,
        resource: str,
        action: str,
        ip_address: str = None,
    ) -> None:
        """Log role checks that denied access."""
        self.logger.warning(
            "Authorization denied",
            event_type="auth_denied",
            user_id=user_id,
            role=role,
            required_roles=sorted(required_roles),
            resource=resource,
            action=action,
            client_ip=ip_address,
        )

    def log_data_access(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str,
        action: str,
        details: Dict[str, Any] = None,
    ) -> None:
        """Log resource mutations for audit trails."""
        self.logger.info(
            "Data access",
            event_type="data_access",
            user_id=user_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=action,
            details=details or {},
        )


# Global logger instances
security_logger = SecurityAuditLogger()
