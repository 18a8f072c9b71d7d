"""
Logging configuration for DripAuth.

Provides structured JSON logging for audit trails and debugging.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

# Context variable for request ID tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One JSON object per line, suitable for log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Specialized logger for audit events.

    Records drip requests and their outcomes, registry changes and
    security-relevant events.
    """

    def __init__(self, name: str = "dripauth.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        if not self._logger.isEnabledFor(level):
            return

        extra = {
            "event_type": event_type,
            "request_id": request_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def drip_request(
        self,
        module_id: str,
        recipient: str,
        nonce_hex: str,
        identifier_hex: str
    ) -> None:
        self._log(
            logging.INFO,
            "DRIP_REQUEST",
            module_id=module_id,
            recipient=recipient,
            nonce=nonce_hex,
            identifier=identifier_hex,
            message=f"Drip requested via {module_id}"
        )

    def drip_completed(
        self,
        module_id: str,
        scheme_name: str,
        recipient: str,
        amount: int,
        identifier_hex: str,
        transfer_reference: Optional[str] = None
    ) -> None:
        self._log(
            logging.INFO,
            "DRIP_COMPLETED",
            module_id=module_id,
            scheme_name=scheme_name,
            recipient=recipient,
            amount=amount,
            identifier=identifier_hex,
            transfer_reference=transfer_reference,
            message=f"Dripped {amount} to {recipient}"
        )

    def drip_rejected(
        self,
        module_id: str,
        reason: str,
        state: str,
        detail: Optional[str] = None
    ) -> None:
        # transfer failures are operational problems, the rest is caller error
        level = logging.ERROR if reason == "TransferFailed" else logging.WARNING
        self._log(
            level,
            "DRIP_REJECTED",
            module_id=module_id,
            reason=reason,
            state=state,
            detail=detail,
            message=f"Drip rejected: {reason}"
        )

    def module_configured(
        self,
        module_id: str,
        name: str,
        enabled: bool,
        cooldown_seconds: int,
        amount: int
    ) -> None:
        self._log(
            logging.INFO,
            "MODULE_CONFIGURED",
            module_id=module_id,
            name=name,
            enabled=enabled,
            cooldown_seconds=cooldown_seconds,
            amount=amount,
            message=f"Module {module_id} configured (enabled={enabled})"
        )

    def module_installed(
        self,
        module_id: str,
        module_type: str,
        scheme_name: str,
        replaced: bool = False
    ) -> None:
        self._log(
            logging.WARNING if replaced else logging.INFO,
            "MODULE_INSTALLED",
            module_id=module_id,
            module_type=module_type,
            scheme_name=scheme_name,
            replaced=replaced,
            message=f"Module {module_id} installed"
        )

    def security_event(
        self,
        event: str,
        severity: str = "medium",
        **details
    ) -> None:
        """Log a security-relevant event."""
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL
        }.get(severity, logging.WARNING)

        self._log(
            level,
            "SECURITY_EVENT",
            security_event=event,
            severity=severity,
            **details,
            message=f"Security event: {event}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (recommended for production)
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the request ID for the current context.

    Args:
        request_id: Request ID to set, or None to generate one

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


# Global audit logger instance
audit_log = AuditLogger()
