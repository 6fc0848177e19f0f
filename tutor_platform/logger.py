import logging
import sys
import json
from datetime import datetime, timezone
from pathlib import Path

# Configure logging
def setup_logger(name: str = "server", logs_dir: str = "logs") -> logging.Logger:
    """
    Attach console and file handlers to the named logger.

    Called once by the application factory. Calling it again is a no-op,
    so test suites that build many apps do not stack handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    if logger.handlers:
        return logger

    # Create logs directory if it doesn't exist
    Path(logs_dir).mkdir(parents=True, exist_ok=True)

    # Create formatters
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_formatter = logging.Formatter(
        '%(levelname)s: %(message)s'
    )

    # Create handlers
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(logging.INFO)

    # Create file handler
    file_handler = logging.FileHandler(
        Path(logs_dir) / f"server_{datetime.now().strftime('%Y%m%d')}.log"
    )
    file_handler.setFormatter(file_formatter)
    file_handler.setLevel(logging.INFO)

    # Add handlers to logger
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    return logger

class SecurityAuditLogger:
    """Writes one JSON line per security-relevant event (logins, OTP verification, password changes)."""

    def __init__(self, name: str = "security_audit"):
        self.logger = logging.getLogger(name)

    def configure(self, logs_dir: str = "logs"):
        self.logger.setLevel(logging.INFO)
        if self.logger.handlers:
            return
        Path(logs_dir).mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(Path(logs_dir) / 'security_audit.log')
        handler.setFormatter(logging.Formatter('%(asctime)s - %(message)s'))
        self.logger.addHandler(handler)

    def log_security_event(self, event_type: str, user_id: str, details: dict):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "user_id": user_id,
            "details": details
        }
        self.logger.info(json.dumps(log_entry, default=str))

# Single logger instances shared across all modules; handlers are attached by the app factory
logger = logging.getLogger("server")
audit_logger = SecurityAuditLogger()
