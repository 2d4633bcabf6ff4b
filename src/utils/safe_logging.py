"""
Safe Logging System with Credential Protection
===============================================

Keeps account data and secrets out of logs: email addresses, bearer
tokens, JWTs, password hashes and provider API keys are masked before a
message reaches a handler.

All API and service logging goes through this module.
"""

import logging
import re
from typing import Any, Dict, Optional


class PIIProtector:
    """Sanitizes PII and credentials from log messages"""

    # Keyword arguments whose values are always masked
    SENSITIVE_FIELDS = {
        'password', 'password_hash', 'token', 'secret', 'api_key',
        'authorization', 'credential', 'email',
    }

    EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')

    # header.payload.signature, each part base64url
    JWT_PATTERN = re.compile(r'\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+')

    BEARER_PATTERN = re.compile(r'(Bearer\s+)\S+', re.IGNORECASE)

    # bcrypt hashes: $2a$ / $2b$ / $2y$ + cost + 53 chars
    BCRYPT_PATTERN = re.compile(r'\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}')

    # Provider keys such as sk-xxxxxxxx
    API_KEY_PATTERN = re.compile(r'\bsk-[A-Za-z0-9]{16,}')

    @staticmethod
    def mask_string(value: str, visible_chars: int = 4) -> str:
        """
        Mask a string, showing only the last few characters

        Returns:
            Masked string like "****5678"
        """
        if not value or len(value) <= visible_chars:
            return "****"
        return "*" * (len(value) - visible_chars) + value[-visible_chars:]

    @staticmethod
    def mask_email(email: str) -> str:
        """
        Mask email address

        Returns:
            Masked email like "a***@***.com"
        """
        if '@' not in email:
            return "***@***.com"

        local, domain = email.split('@', 1)
        domain_parts = domain.split('.')

        masked_local = local[0] + "***" if len(local) > 1 else "***"
        return f"{masked_local}@***.{domain_parts[-1]}"

    @staticmethod
    def mask_dict(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively mask sensitive fields in a dictionary"""
        if not isinstance(data, dict):
            return data

        masked = {}
        for key, value in data.items():
            key_lower = key.lower()
            is_sensitive = any(field in key_lower for field in PIIProtector.SENSITIVE_FIELDS)

            if is_sensitive:
                if isinstance(value, str) and 'email' in key_lower:
                    masked[key] = PIIProtector.mask_email(value)
                elif isinstance(value, str):
                    masked[key] = PIIProtector.mask_string(value)
                else:
                    masked[key] = "***"
            elif isinstance(value, dict):
                masked[key] = PIIProtector.mask_dict(value)
            elif isinstance(value, str):
                masked[key] = PIIProtector.sanitize_message(value)
            else:
                masked[key] = value

        return masked

    @staticmethod
    def sanitize_message(message: str) -> str:
        """Remove credentials and email addresses from a log message"""
        message = PIIProtector.BEARER_PATTERN.sub(r"\1***", message)
        message = PIIProtector.JWT_PATTERN.sub("***JWT***", message)
        message = PIIProtector.BCRYPT_PATTERN.sub("***HASH***", message)
        message = PIIProtector.API_KEY_PATTERN.sub("***_KEY", message)
        message = PIIProtector.EMAIL_PATTERN.sub("***@***.com", message)
        return message


class SafeLogger:
    """
    Logger with automatic credential protection

    Usage:
        logger = get_safe_logger(__name__)
        logger.info("Login failed", email="alice@example.com")
        # Output: "Login failed | email=a***@***.com"
    """

    def __init__(self, name: str, log_file: Optional[str] = None):
        self.logger = logging.getLogger(name)

        # Handlers are attached once per logger name
        if not self.logger.handlers:
            self.logger.setLevel(logging.DEBUG)

            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.setFormatter(logging.Formatter('%(levelname)s: %(name)s: %(message)s'))
            self.logger.addHandler(console_handler)

            if log_file:
                file_handler = logging.FileHandler(log_file)
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(logging.Formatter(
                    '%(asctime)s | %(name)s | %(levelname)s | %(message)s'
                ))
                self.logger.addHandler(file_handler)

    def _format_safe_message(self, message: str, **kwargs) -> str:
        safe_message = PIIProtector.sanitize_message(message)

        if kwargs:
            safe_kwargs = PIIProtector.mask_dict(kwargs)
            kwargs_str = " | ".join(f"{k}={v}" for k, v in safe_kwargs.items())
            return f"{safe_message} | {kwargs_str}"

        return safe_message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_safe_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_safe_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_safe_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_safe_message(message, **kwargs))

    def exception(self, message: str, **kwargs):
        """Log at ERROR with the active traceback attached"""
        self.logger.error(self._format_safe_message(message, **kwargs), exc_info=True)


def get_safe_logger(name: str, log_file: Optional[str] = None) -> SafeLogger:
    """
    Get a safe logger instance

    Args:
        name: Logger name (use __name__)
        log_file: Optional log file path
    """
    return SafeLogger(name, log_file)
