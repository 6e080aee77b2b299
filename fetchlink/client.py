"""Agentverse REST and mailbox client for delivering agent envelopes.

Environment variables (all overridable via constructor args):
    FETCHLINK_AGENTVERSE_API_KEY  - bearer token for Agentverse
    FETCHLINK_ENVIRONMENT         - "production" (default) or "staging"
    FETCHLINK_HTTP_TIMEOUT        - per-request timeout in seconds (default 30)

The client moves envelopes without inspecting them and never retries; retry
policy belongs to the caller.
"""

import logging
import os
from typing import Any

import requests

from .envelope import create_envelope, serialize_envelope, sign_envelope
from .errors import AgentverseError
from .identity import Identity
from .types import Envelope

_LOG = logging.getLogger(__name__)

AGENTVERSE_CONFIG = {
    "production": {
        "api_url": "https://agentverse.ai/api/v1",
        "mailbox_url": "https://mailbox.agentverse.ai",
    },
    "staging": {
        "api_url": "https://staging.agentverse.ai/api/v1",
        "mailbox_url": "https://staging-mailbox.agentverse.ai",
    },
}


class AgentverseClient:
    """Client for agent lookup and message delivery through Agentverse."""

    def __init__(
        self,
        api_key: str | None = None,
        environment: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.environment = environment or os.environ.get(
            "FETCHLINK_ENVIRONMENT", "production"
        )
        if self.environment not in AGENTVERSE_CONFIG:
            raise AgentverseError(f"Unknown Agentverse environment: {self.environment}")
        config = AGENTVERSE_CONFIG[self.environment]
        self.api_url = config["api_url"]
        self.mailbox_url = config["mailbox_url"]
        self.timeout = timeout or float(os.environ.get("FETCHLINK_HTTP_TIMEOUT", "30"))

        self._session = session or requests.Session()
        self._session.headers["Content-Type"] = "application/json"
        api_key = api_key or os.environ.get("FETCHLINK_AGENTVERSE_API_KEY")
        if api_key:
            self.set_api_key(api_key)

    def set_api_key(self, api_key: str) -> None:
        self._session.headers["Authorization"] = f"Bearer {api_key}"

    # -- agent lookup --

    def get_agent_info(self, address: str) -> dict | None:
        """Fetch an agent record, or ``None`` if Agentverse does not know it."""
        return self._request("GET", f"{self.api_url}/agents/{address}", allow_missing=True)

    def get_agent_by_name(self, name: str) -> dict | None:
        return self._request("GET", f"{self.api_url}/agents/name/{name}", allow_missing=True)

    def get_agents_by_protocol(self, protocol_digest: str) -> list[dict]:
        return self._request("GET", f"{self.api_url}/agents/protocol/{protocol_digest}") or []

    def search_agents(self, query: str, limit: int = 10) -> list[dict]:
        return self._request(
            "GET",
            f"{self.api_url}/agents/search",
            params={"q": query, "limit": str(limit)},
        ) or []

    def get_agent_protocols(self, address: str) -> list[str]:
        agent = self.get_agent_info(address)
        return (agent or {}).get("protocols", [])

    def supports_protocol(self, address: str, protocol_digest: str) -> bool:
        return protocol_digest in self.get_agent_protocols(address)

    # -- message delivery --

    def submit_envelope(self, envelope: Envelope, endpoint: str) -> str:
        """POST a pre-built envelope to an agent endpoint's ``/submit`` route.

        Returns:
            The message id reported by the agent, else the envelope session.
        """
        url = f"{endpoint.rstrip('/')}/submit"
        data = self._request("POST", url, body=serialize_envelope(envelope).encode("utf-8"))
        message_id = _field(data, "messageId") or envelope["session"]
        _LOG.info("delivered session=%s to %s", envelope["session"], envelope["target"])
        return message_id

    def send_message(
        self,
        sender: str,
        target: str,
        payload: Any,
        schema_digest: str,
        *,
        identity: Identity | None = None,
        session: str | None = None,
        protocol_digest: str | None = None,
        expiry_seconds: int | None = None,
    ) -> str:
        """Build, optionally sign, and deliver a message to *target*.

        The envelope goes to the first endpoint Agentverse lists for *target*.

        Raises:
            AgentverseError: If the agent is unknown, has no endpoints, or
                the delivery request fails.
        """
        agent = self.get_agent_info(target)
        endpoints = (agent or {}).get("endpoints") or []
        if not endpoints:
            raise AgentverseError(f"Agent not found or has no endpoints: {target}")

        envelope = create_envelope(
            sender,
            target,
            payload,
            schema_digest,
            session=session,
            protocol_digest=protocol_digest,
            expiry_seconds=expiry_seconds,
        )
        if identity is not None:
            envelope = sign_envelope(envelope, identity)
        return self.submit_envelope(envelope, endpoints[0]["url"])

    def send_mailbox_message(
        self,
        sender: str,
        target: str,
        payload: Any,
        schema_digest: str,
        *,
        identity: Identity | None = None,
        session: str | None = None,
        protocol_digest: str | None = None,
        expiry_seconds: int | None = None,
    ) -> str:
        """Leave a message in *target*'s Agentverse mailbox."""
        envelope = create_envelope(
            sender,
            target,
            payload,
            schema_digest,
            session=session,
            protocol_digest=protocol_digest,
            expiry_seconds=expiry_seconds,
        )
        if identity is not None:
            envelope = sign_envelope(envelope, identity)
        data = self._request(
            "POST",
            f"{self.mailbox_url}/v1/messages",
            body=serialize_envelope(envelope).encode("utf-8"),
        )
        message_id = _field(data, "id") or envelope["session"]
        _LOG.info("queued session=%s in mailbox of %s", envelope["session"], target)
        return message_id

    def get_mailbox_messages(self, address: str) -> list[dict]:
        return self._request("GET", f"{self.mailbox_url}/v1/agents/{address}/messages") or []

    def get_mailbox_message(self, address: str, message_id: str) -> dict | None:
        return self._request(
            "GET",
            f"{self.mailbox_url}/v1/agents/{address}/messages/{message_id}",
            allow_missing=True,
        )

    def delete_mailbox_message(self, address: str, message_id: str) -> bool:
        """Delete a mailbox message. Returns ``False`` if it did not exist."""
        result = self._request(
            "DELETE",
            f"{self.mailbox_url}/v1/agents/{address}/messages/{message_id}",
            allow_missing=True,
        )
        return result is not None

    # -- internal helpers --

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict | None = None,
        body: bytes | None = None,
        allow_missing: bool = False,
    ) -> Any:
        try:
            resp = self._session.request(
                method, url, params=params, data=body, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise AgentverseError(f"{method} {url} failed: {e}") from e

        if allow_missing and resp.status_code == 404:
            return None
        if 200 <= resp.status_code < 300:
            if not resp.content:
                return {}
            try:
                return resp.json()
            except ValueError as e:
                raise AgentverseError(f"{method} {url} returned invalid JSON") from e

        raise AgentverseError(
            f"Agentverse rejected request ({resp.status_code}): {_error_message(resp)}"
        )


def _field(data: Any, name: str) -> Any:
    return data.get(name) if isinstance(data, dict) else None


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    return _field(body, "message") or _field(body, "error") or resp.text
