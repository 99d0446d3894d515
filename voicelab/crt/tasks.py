"""
Huey background tasks for the voice CRT.

Each function here is a thin wrapper: delegate to a helper and handle
queue-specific concerns.
"""
import logging

from huey.contrib.djhuey import task

logger = logging.getLogger(__name__)


@task()
def post_voice_response_task(payload: dict, url: str | None = None) -> dict | None:
    """
    Send one trial record to the result sink endpoint.

    Failures are logged and dropped; the in-memory session already holds the
    result and the participant keeps going.
    """
    from voicelab.crt.helpers.result_sink import ResultSinkError
    from voicelab.crt.helpers.result_sink import post_voice_response

    try:
        return post_voice_response(payload, url)
    except ResultSinkError as exc:
        logger.warning(
            "post_voice_response_task: trial %s for %s/%s not saved: %s",
            payload.get("trialIndex"),
            payload.get("experimentId"),
            payload.get("participantId"),
            exc,
        )
        return None
