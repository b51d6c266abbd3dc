"""
Logging setup and account event logging.
"""
from datetime import datetime, timezone
from typing import Optional
import logging
import os
import sys

from fastapi import Request

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

ALLOWED_EVENT_TYPES = {
    "signup_success",
    "signup_conflict",
    "signin_success",
    "signin_failure",
    "token_rejected",
}


def configure_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure root logging to stdout and, when log_dir is set, to
    <log_dir>/account_events.log.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    # Try to add file handler, but continue without it if directory creation fails
    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(log_dir, "account_events.log")))
        except OSError as e:
            print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )


def client_ip(request: Request) -> Optional[str]:
    """Client address, falling back to the first X-Forwarded-For entry."""
    if request.client and request.client.host:
        return request.client.host
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return None


def log_account_event(
    event_type: str,
    request: Request,
    public_id: Optional[str] = None,
    email: Optional[str] = None,
) -> None:
    """
    Emit one audit line for an account event. Passwords and hashes never
    pass through here.

    Raises:
        ValueError: If event_type is invalid
    """
    if event_type not in ALLOWED_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type '{event_type}'. Must be one of: {', '.join(sorted(ALLOWED_EVENT_TYPES))}"
        )

    logger.info(
        "ACCOUNT %s uuid=%s email=%s ip=%s user_agent=%s timestamp=%s",
        event_type,
        public_id,
        email,
        client_ip(request),
        request.headers.get("user-agent"),
        datetime.now(timezone.utc).isoformat(),
    )
