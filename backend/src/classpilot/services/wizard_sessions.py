"""Track open authoring wizard sessions between HTTP requests."""

import logging

from classpilot.services.authoring import AuthoringWizard

logger = logging.getLogger(__name__)

# {session_id: AuthoringWizard}
_sessions: dict[str, AuthoringWizard] = {}


def open_session(wizard: AuthoringWizard) -> AuthoringWizard:
    _sessions[wizard.id] = wizard
    return wizard


def get_session(session_id: str) -> AuthoringWizard | None:
    return _sessions.get(session_id)


def close_session(session_id: str) -> None:
    """Cancel and forget a session; any in-flight generation result is discarded."""
    wizard = _sessions.pop(session_id, None)
    if wizard is not None:
        wizard.cancel()
        logger.info("Closed wizard session %s", session_id)


def clear_sessions() -> None:
    for session_id in list(_sessions):
        close_session(session_id)
