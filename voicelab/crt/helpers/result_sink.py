"""
Result sink: hands finished trial records to the voice-responses endpoint.

Persistence never holds up the session. ``submit`` only enqueues work; the
HTTP call happens in a huey task, and any failure there is logged and dropped.
"""
import json
import logging
import urllib.error
import urllib.request

from django.conf import settings

logger = logging.getLogger(__name__)


class ResultSinkError(Exception):
    """Raised when the voice-responses endpoint cannot be reached or returns non-2xx."""


def post_voice_response(payload: dict, url: str | None = None, timeout: float = 10) -> dict:
    """
    POST one trial record to the voice-responses endpoint.

    Returns:
        The parsed JSON response dict.

    Raises:
        ResultSinkError: on a non-2xx status or a network failure.
    """
    target = url or settings.VOICE_RESPONSES_URL
    request = urllib.request.Request(
        target,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json; charset=utf-8"},
        method="POST",
    )

    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            body = response.read().decode("utf-8")
    except urllib.error.HTTPError as exc:
        error_body = exc.read().decode("utf-8", errors="replace")
        raise ResultSinkError(
            f"Voice responses endpoint returned HTTP {exc.code}: {error_body}"
        ) from exc
    except (urllib.error.URLError, TimeoutError) as exc:
        raise ResultSinkError(f"Voice responses endpoint unreachable: {exc}") from exc

    try:
        return json.loads(body) if body else {}
    except json.JSONDecodeError:
        return {"raw": body}


class ResultSink:
    def submit(self, payload: dict) -> None:
        raise NotImplementedError


class InMemoryResultSink(ResultSink):
    """Keeps submitted payloads in a list."""

    def __init__(self):
        self.payloads: list[dict] = []

    def submit(self, payload: dict) -> None:
        self.payloads.append(payload)


class HttpResultSink(ResultSink):
    """Posts each payload from a background task."""

    def __init__(self, url: str | None = None):
        self.url = url

    def submit(self, payload: dict) -> None:
        from voicelab.crt.tasks import post_voice_response_task

        try:
            post_voice_response_task(payload, self.url)
        except Exception:
            logger.exception(
                "Could not enqueue voice response for trial %s", payload.get("trialIndex")
            )
