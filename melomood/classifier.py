"""Emotion classification across the camera, text and voice modalities."""
from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional, Protocol, Union

from . import config
from .errors import ClassificationFailure
from .models import Emotion, EmotionResult, Modality

logger = logging.getLogger(__name__)


class EmotionProviderProtocol(Protocol):
    """Inference provider used to read emotions from user input."""

    async def classify_face(self, image: Any) -> Optional[Mapping[str, Any]]:
        ...

    async def classify_text(self, text: str) -> Optional[str]:
        ...

    async def classify_voice_description(self, text: str) -> Optional[str]:
        ...


class EmotionClassifier:
    """Turns modality-specific input into an :class:`EmotionResult`.

    Only the camera modality is gated on confidence; text and voice results
    carry a fixed confidence and are accepted whenever the provider answers.
    """

    def __init__(
        self,
        provider: EmotionProviderProtocol,
        *,
        camera_threshold: float = config.CAMERA_CONFIDENCE_THRESHOLD,
    ) -> None:
        self.provider = provider
        self.camera_threshold = camera_threshold

    async def classify(self, modality: Union[Modality, str], data: Any) -> EmotionResult:
        modality = Modality(modality)
        if modality is Modality.CAMERA:
            return await self.classify_camera(data)
        if modality is Modality.TEXT:
            return await self.classify_text(data)
        return await self.classify_voice(data)

    async def classify_camera(self, image: Any) -> EmotionResult:
        try:
            response = await self.provider.classify_face(image)
        except Exception as error:
            raise _provider_failure(Modality.CAMERA, error) from error
        if not response:
            raise ClassificationFailure(reason="provider returned no face analysis")

        emotion = _parse_emotion(_field(response, "emotion"))
        confidence = _parse_confidence(_field(response, "confidence"))
        if confidence < self.camera_threshold:
            logger.info(
                "camera_confidence_rejected",
                extra={"emotion": emotion.value, "confidence": confidence},
            )
            raise ClassificationFailure(
                reason=f"confidence {confidence:.2f} below threshold {self.camera_threshold:.2f}"
            )
        return EmotionResult(emotion=emotion, confidence=confidence)

    async def classify_text(self, text: str) -> EmotionResult:
        try:
            label = await self.provider.classify_text(text)
        except Exception as error:
            raise _provider_failure(Modality.TEXT, error) from error
        return EmotionResult(emotion=_parse_emotion(label), confidence=config.TEXT_CONFIDENCE)

    async def classify_voice(self, description: str) -> EmotionResult:
        try:
            label = await self.provider.classify_voice_description(description)
        except Exception as error:
            raise _provider_failure(Modality.VOICE, error) from error
        return EmotionResult(emotion=_parse_emotion(label), confidence=config.VOICE_CONFIDENCE)


def _provider_failure(modality: Modality, error: Exception) -> ClassificationFailure:
    logger.error("emotion_provider_failed", extra={"modality": modality.value, "error": str(error)})
    return ClassificationFailure(config.ANALYSIS_ERROR_MESSAGE, reason=str(error))


def _field(response: Any, name: str) -> Any:
    if isinstance(response, Mapping):
        return response.get(name)
    return getattr(response, name, None)


def _parse_emotion(label: Any) -> Emotion:
    if label is None:
        raise ClassificationFailure(reason="provider returned no emotion")
    try:
        return Emotion.from_label(label)
    except ValueError as error:
        raise ClassificationFailure(reason=str(error)) from error


def _parse_confidence(raw: Any) -> float:
    if isinstance(raw, bool):
        raise ClassificationFailure(reason=f"invalid confidence {raw!r}")
    try:
        confidence = float(raw)
    except (TypeError, ValueError) as error:
        raise ClassificationFailure(reason=f"invalid confidence {raw!r}") from error
    if math.isnan(confidence) or not 0.0 <= confidence <= 1.0:
        raise ClassificationFailure(reason=f"confidence {raw!r} outside [0, 1]")
    return confidence
