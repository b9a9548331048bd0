import asyncio

import pytest

from melomood import config
from melomood.classifier import EmotionClassifier
from melomood.errors import ClassificationFailure
from melomood.models import Emotion, EmotionResult, Modality


class FakeEmotionProvider:
    def __init__(self, face=None, label="Happy", error=None):
        self.face = face if face is not None else {"emotion": "Happy", "confidence": 0.95}
        self.label = label
        self.error = error
        self.calls = []

    async def classify_face(self, image):
        self.calls.append(("face", image))
        if self.error:
            raise self.error
        return self.face

    async def classify_text(self, text):
        self.calls.append(("text", text))
        if self.error:
            raise self.error
        return self.label

    async def classify_voice_description(self, text):
        self.calls.append(("voice", text))
        if self.error:
            raise self.error
        return self.label


def classify(provider, modality, data):
    return asyncio.run(EmotionClassifier(provider).classify(modality, data))


def test_camera_below_threshold_is_rejected():
    provider = FakeEmotionProvider(face={"emotion": "Sad", "confidence": 0.59})
    with pytest.raises(ClassificationFailure) as excinfo:
        classify(provider, "camera", "frame")
    assert excinfo.value.user_message == config.LOW_CONFIDENCE_MESSAGE
    assert "text" in excinfo.value.user_message


def test_camera_at_threshold_is_accepted():
    provider = FakeEmotionProvider(face={"emotion": "Sad", "confidence": 0.6})
    assert classify(provider, Modality.CAMERA, "frame") == EmotionResult(Emotion.SAD, 0.6)


def test_camera_confidence_must_be_numeric_and_bounded():
    for bad in ("high", None, 1.5, -0.1, True):
        provider = FakeEmotionProvider(face={"emotion": "Calm", "confidence": bad})
        with pytest.raises(ClassificationFailure):
            classify(provider, "camera", "frame")


def test_camera_empty_response_is_failure():
    provider = FakeEmotionProvider(face={})
    with pytest.raises(ClassificationFailure) as excinfo:
        classify(provider, "camera", "frame")
    assert excinfo.value.user_message == config.LOW_CONFIDENCE_MESSAGE


def test_text_uses_fixed_confidence_without_gate():
    provider = FakeEmotionProvider(label="Thoughtful")
    result = classify(provider, "text", "I keep wondering about things")
    assert result == EmotionResult(Emotion.THOUGHTFUL, 0.9)
    assert provider.calls == [("text", "I keep wondering about things")]


def test_voice_uses_fixed_confidence_without_gate():
    provider = FakeEmotionProvider(label="energetic")
    result = classify(provider, "voice", "fast, loud and upbeat")
    assert result == EmotionResult(Emotion.ENERGETIC, 0.8)
    assert provider.calls == [("voice", "fast, loud and upbeat")]


def test_text_ignores_camera_threshold():
    classifier = EmotionClassifier(FakeEmotionProvider(label="Calm"), camera_threshold=0.95)
    assert asyncio.run(classifier.classify_text("relaxed")).confidence == 0.9


@pytest.mark.parametrize("modality", ["camera", "text", "voice"])
def test_provider_error_becomes_classification_failure(modality):
    provider = FakeEmotionProvider(error=RuntimeError("network down"))
    with pytest.raises(ClassificationFailure) as excinfo:
        classify(provider, modality, "data")
    assert excinfo.value.user_message == config.ANALYSIS_ERROR_MESSAGE
    assert excinfo.value.reason == "network down"


@pytest.mark.parametrize("label", [None, "Bored", 42])
def test_unknown_labels_are_failures(label):
    with pytest.raises(ClassificationFailure):
        classify(FakeEmotionProvider(label=label), "text", "meh")


def test_unknown_modality_is_rejected():
    with pytest.raises(ValueError):
        classify(FakeEmotionProvider(), "telepathy", "data")
