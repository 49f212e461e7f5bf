#  Voice Tutor - Realtime Session Client
#
#  Requests ephemeral realtime voice sessions from the OpenAI Realtime API.
#  The browser connects with the returned client secret; our API key never
#  leaves the server.
#
#  Depends on: backend/config.py, backend/exceptions.py
#  Used by:    container.py, services/conversations.py

import logging

import httpx

from backend.exceptions import UpstreamServiceError

logger = logging.getLogger("tutor.realtime")


def tutor_instructions(name: str, age: int) -> str:
    """System prompt for a Socratic voice tutor."""
    return (
        f"You are a helpful AI tutor named Helper. You're talking with {name}, "
        f"who is {age} years old.\n\n"
        "Your teaching philosophy is Socratic - guide students to discover answers "
        "themselves rather than giving direct answers. Ask thoughtful questions that "
        "help them think through problems step by step.\n\n"
        "Key principles:\n"
        "- Be encouraging and patient\n"
        "- Ask clarifying questions\n"
        "- Break down complex problems into smaller steps\n"
        "- Celebrate their reasoning process\n"
        "- If they're stuck, give gentle hints, not answers\n"
        f"- Use age-appropriate language for a {age}-year-old\n\n"
        "When they get something right, acknowledge it warmly. When they struggle, "
        "help them find a path forward through questions.\n\n"
        "Keep responses conversational and concise - this is voice conversation, not text."
    )


class RealtimeSessionClient:
    """Thin wrapper over POST /realtime/sessions."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-realtime-preview-2024-12-17",
        timeout: float = 30.0,
    ):
        self._http = http_client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout

    async def create_session(self, *, voice: str, learner_name: str, learner_age: int) -> str:
        """Create a session and return its ephemeral client secret.

        Raises UpstreamServiceError on transport errors and on any answer
        that does not carry a client secret.
        """
        body = {
            "model": self._model,
            "voice": voice,
            "instructions": tutor_instructions(learner_name, learner_age),
        }
        try:
            resp = await self._http.post(
                f"{self._base_url}/realtime/sessions",
                json=body,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.error("Realtime API request failed: %s", e)
            raise UpstreamServiceError(f"Realtime API unreachable: {e}") from e

        if resp.status_code >= 400:
            logger.error("Realtime API error %d: %s", resp.status_code, resp.text)
            raise UpstreamServiceError(
                f"Realtime API returned {resp.status_code}: {resp.text}"
            )

        try:
            return resp.json()["client_secret"]["value"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Realtime API returned an unexpected body: %s", resp.text)
            raise UpstreamServiceError("Realtime API response had no client secret") from e
