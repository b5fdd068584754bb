"""
Hosted classifier integration (Hugging Face Inference API wire format).

`query_model` posts one payload to `<inference_base_url>/<model_id>` and
returns the decoded JSON body. While the service answers with an error that
mentions "loading" (cold model), the identical request is re-sent after
`settings.inference_loading_retry_delay_sec`. Retries are unbounded unless
`settings.inference_max_loading_retries` is set: callers that need a hard
deadline wrap the call in `asyncio.timeout()`.

`infer` turns a subject into a 0–100 realness score using a per-model
label vocabulary. Every failure surfaces as `InferenceError`; the pipeline
decides what to substitute.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

import aiohttp

from authlens.config import settings
from authlens.detection.scoring import clamp, round_half_up
from authlens.integrations import http_client as http_module
from authlens.schemas.analysis import ImageSubject, TextSubject

logger = logging.getLogger(__name__)

LOADING_SENTINEL = "loading"
NEUTRAL_REALNESS = 50


class InferenceError(Exception):
    """The remote model could not produce a usable answer."""


@dataclass(frozen=True)
class LabelVocabulary:
    """Labels (lower-cased) that mean 'real / human' for one model."""
    exact: Tuple[str, ...] = ()
    contains: Tuple[str, ...] = ()

    def matches(self, label: str) -> bool:
        return label in self.exact or any(term in label for term in self.contains)


# roberta-base-openai-detector: "Real"/"Fake" or LABEL_0 (fake) / LABEL_1 (real)
TEXT_DETECTOR_LABELS = LabelVocabulary(exact=("real", "label_1"))
# chatgpt-detector-roberta: "Human"/"ChatGPT" or LABEL_0 (human)
TEXT_ALTERNATE_LABELS = LabelVocabulary(exact=("label_0",), contains=("human",))
IMAGE_DETECTOR_LABELS = LabelVocabulary(contains=("real", "human", "authentic"))
DEEPFAKE_LABELS = LabelVocabulary(contains=("real",))


def _model_url(model_id: str) -> str:
    return f"{settings.inference_base_url.rstrip('/')}/{model_id}"


async def _read_body(response) -> Any:
    """Decode a JSON body regardless of Content-Type; None when unparsable."""
    try:
        return await response.json(content_type=None)
    except ValueError:
        return None


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return None


async def query_model(
    model_id: str,
    credential: str,
    *,
    data: Optional[bytes] = None,
    json_payload: Optional[dict] = None,
) -> Any:
    """
    POST one payload to a hosted model and return its decoded JSON answer.

    The retry loop lives entirely in this coroutine, so concurrent requests
    never share a timer.
    """
    url = _model_url(model_id)
    headers = {"Authorization": f"Bearer {credential}"}
    loading_retries = 0

    while True:
        try:
            async with http_module.request_session() as sess:
                async with sess.post(url, data=data, json=json_payload, headers=headers) as response:
                    status = response.status
                    body = await _read_body(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise InferenceError(f"{model_id}: request failed: {e}") from e

        error = _error_message(body)

        if 200 <= status < 300 and error is None:
            if body is None:
                raise InferenceError(f"{model_id}: malformed response body")
            return body

        if error and LOADING_SENTINEL in error:
            cap = settings.inference_max_loading_retries
            if cap is not None and loading_retries >= cap:
                raise InferenceError(f"{model_id}: still loading after {loading_retries} retries")
            loading_retries += 1
            delay = settings.inference_loading_retry_delay_sec
            logger.info(f"[INFERENCE] {model_id} is loading, retry #{loading_retries} in {delay:.0f}s")
            await asyncio.sleep(delay)
            continue

        raise InferenceError(f"{model_id}: HTTP {status}: {error or 'no error detail'}")


def _prediction_rows(body: Any) -> list:
    """Some pipelines wrap the label list in one extra array level."""
    if not isinstance(body, list):
        raise InferenceError(f"Unexpected response shape: {type(body).__name__}")
    if body and isinstance(body[0], list):
        body = body[0]
    return [row for row in body if isinstance(row, dict)]


def extract_realness(body: Any, vocabulary: LabelVocabulary) -> int:
    """Map a [{label, score}, ...] answer to 0–100. No matching label → 50."""
    realness = NEUTRAL_REALNESS
    for row in _prediction_rows(body):
        label = str(row.get("label") or "").lower()
        if not vocabulary.matches(label):
            continue
        try:
            realness = round_half_up(float(row.get("score", 0.0)) * 100)
        except (TypeError, ValueError) as e:
            raise InferenceError(f"Non-numeric score for label '{label}'") from e
    return clamp(realness, 0, 100)


async def infer(
    subject: Union[TextSubject, ImageSubject],
    model_id: str,
    credential: str,
    vocabulary: LabelVocabulary,
) -> int:
    """Realness score (0–100) from one hosted model, or InferenceError."""
    if isinstance(subject, TextSubject):
        payload = {"inputs": subject.content[:settings.text_input_max_chars]}
        body = await query_model(model_id, credential, json_payload=payload)
    else:
        body = await query_model(model_id, credential, data=subject.data)

    realness = extract_realness(body, vocabulary)
    logger.info(f"[INFERENCE] {model_id} → realness={realness}")
    return realness


async def infer_text_realness(subject: TextSubject, credential: str) -> int:
    """Primary RoBERTa detector, then the ChatGPT detector if the first fails."""
    try:
        return await infer(subject, settings.text_detector_model, credential, TEXT_DETECTOR_LABELS)
    except InferenceError as e:
        logger.warning(f"[INFERENCE] Primary text detector failed ({e}); trying alternate model")
    return await infer(subject, settings.text_alternate_model, credential, TEXT_ALTERNATE_LABELS)
