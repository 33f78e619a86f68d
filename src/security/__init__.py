"""Security module — sign-in, step-up re-authentication, cron secret, audit."""

from src.security.audit import audit_on_event
from src.security.auth import reauthenticate, verify_cron_secret

__all__ = ["audit_on_event", "reauthenticate", "verify_cron_secret"]
