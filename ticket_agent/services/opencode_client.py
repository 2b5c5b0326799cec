"""OpenCode server client for running coding-agent sessions."""

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any

import httpx

from ticket_agent.core.config import settings
from ticket_agent.core.errors import (
    DecodeError,
    PreconditionError,
    TransportError,
)

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "idle"
    BUSY = "busy"
    OTHER = "other"


class AgentTimeoutError(TransportError):
    """Raised when a session does not become idle within the allowed time."""


class OpenCodeClient:
    """Client for an OpenCode server (``opencode serve``).

    Sessions are scoped to a working directory, passed as the ``directory``
    query parameter on every call.
    """

    def __init__(
        self,
        base_url: str | None = None,
        model_id: str | None = None,
        provider_id: str | None = None,
        client: httpx.Client | None = None,
    ):
        self.model_id = model_id or settings.opencode_model_id
        self.provider_id = provider_id or settings.opencode_provider_id
        self._client = client or httpx.Client(
            base_url=base_url or settings.opencode_base_url,
            timeout=settings.http_timeout,
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP request to OpenCode failed: {e}", e) from e

        if response.status_code >= 400:
            raise TransportError(
                f"OpenCode returned {response.status_code} for {method} {url}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Failed to parse OpenCode response: {e}", e) from e

    def create_session(self, work_dir: str | Path) -> str:
        """Create a session rooted at ``work_dir`` and return its id."""
        if not str(work_dir).strip():
            raise PreconditionError("Working directory cannot be empty")

        data = self._request(
            "POST", "/session", params={"directory": str(work_dir)}, json={}
        )
        session_id = data.get("id") if isinstance(data, dict) else None
        if not session_id:
            raise DecodeError(f"OpenCode session response has no id: {data!r}")

        logger.info(f"Created OpenCode session {session_id}")
        return session_id

    def send_prompt(
        self,
        session_id: str,
        work_dir: str | Path,
        text: str,
        model_id: str | None = None,
        provider_id: str | None = None,
    ) -> None:
        """Send a text prompt to the session."""
        if not session_id or not text:
            raise PreconditionError("Session id and prompt text are required")

        body = {
            "model": {
                "providerID": provider_id or self.provider_id,
                "modelID": model_id or self.model_id,
            },
            "parts": [{"type": "text", "text": text}],
        }
        # The server may hold the request open while the agent works
        self._request(
            "POST",
            f"/session/{session_id}/message",
            params={"directory": str(work_dir)},
            json=body,
            timeout=httpx.Timeout(settings.http_timeout, read=settings.agent_max_wait),
        )
        logger.info(f"Prompt sent to session {session_id}")

    def poll_status(self, session_id: str, work_dir: str | Path) -> SessionStatus:
        """Return the current status of a session.

        A session missing from the server's status map is treated as idle.
        """
        statuses = self._request(
            "GET", "/session/status", params={"directory": str(work_dir)}
        )
        if not isinstance(statuses, dict):
            raise DecodeError(f"Unexpected session status payload: {statuses!r}")

        status = statuses.get(session_id)
        if not status:
            logger.debug(f"Session {session_id} not in status map, assuming idle")
            return SessionStatus.IDLE

        status_type = status.get("type") if isinstance(status, dict) else None
        if status_type == SessionStatus.IDLE.value:
            return SessionStatus.IDLE
        if status_type == SessionStatus.BUSY.value:
            return SessionStatus.BUSY
        return SessionStatus.OTHER

    def wait_for_idle(
        self,
        session_id: str,
        work_dir: str | Path,
        poll_interval: float | None = None,
        max_wait: float | None = None,
    ) -> None:
        """Poll until the session is idle.

        After ``max_wait`` seconds one last status check is made before giving
        up.

        Transport errors while polling are retried until then.

        Raises:
            AgentTimeoutError: If the session is still not idle after the final check
            TransportError: If the final check itself fails
        """
        if poll_interval is None:
            poll_interval = settings.agent_poll_interval
        if max_wait is None:
            max_wait = settings.agent_max_wait

        start_time = time.monotonic()

        while True:
            try:
                status = self.poll_status(session_id, work_dir)
            except TransportError as e:
                # Retried until the deadline, the final check below propagates
                logger.warning(f"Session {session_id} status poll failed: {e}")
            else:
                if status is SessionStatus.IDLE:
                    logger.info(f"Session {session_id} is idle")
                    return
                logger.debug(f"Session {session_id} status: {status.value}")

            if time.monotonic() - start_time >= max_wait:
                break
            time.sleep(poll_interval)

        logger.warning(
            f"Session {session_id} not idle after {max_wait}s, checking final status"
        )
        if self.poll_status(session_id, work_dir) is SessionStatus.IDLE:
            return

        raise AgentTimeoutError(
            f"Session {session_id} did not become idle within {max_wait}s"
        )
