"""Builds the lifecycle controller and its collaborators from configuration."""

import logging
from typing import Callable, Optional

from ..audio.capture import AudioCapturePipeline
from ..config import VoiceDraftConfig
from ..storage.transcript_exporter import TranscriptExporter
from ..transcription.base import AbstractTranscriptChannel
from ..transcription.deepgram_channel import DeepgramChannel
from ..transcription.google_backend import GoogleStreamingChannel
from ..transcription.publisher import TranscriptPublisher
from .recording_controller import RecordingLifecycleController

logger = logging.getLogger(__name__)


def build_channel_factory(config: VoiceDraftConfig) -> Callable[[], AbstractTranscriptChannel]:
    """Return a factory creating a fresh channel for the configured provider.

    Credentials are read once, here, so a missing key fails at startup
    rather than on the first recording.
    """
    provider = config.get_provider()
    sample_rate = config.get_sample_rate()

    if provider == "google":
        credentials_path = config.get_google_credentials_path()
        use_enhanced = config.get('google_cloud.use_enhanced_model', True)
        enable_punctuation = config.get('google_cloud.enable_automatic_punctuation', True)
        model = config.get('google_cloud.model', 'latest_long')
        logger.info(f"Using Google streaming channel (model={model})")
        logger.debug(f"Config: enhanced={use_enhanced}, punctuation={enable_punctuation}")

        def create_google_channel() -> AbstractTranscriptChannel:
            return GoogleStreamingChannel(
                credentials_path=credentials_path,
                sample_rate=sample_rate,
                use_enhanced=use_enhanced,
                enable_automatic_punctuation=enable_punctuation,
                model=model,
            )
        return create_google_channel

    api_key = config.get_deepgram_api_key()
    punctuate = config.get('deepgram.punctuate', True)
    logger.info("Using Deepgram channel")

    def create_deepgram_channel() -> AbstractTranscriptChannel:
        return DeepgramChannel(api_key=api_key, sample_rate=sample_rate, punctuate=punctuate)
    return create_deepgram_channel


def build_capture_factory(config: VoiceDraftConfig) -> Callable[[], AudioCapturePipeline]:
    sample_rate = config.get_sample_rate()
    chunk_duration_ms = config.get_chunk_duration_ms()
    channels = config.get('audio.channels', 1)
    device_index = config.get('audio.device_index')

    logger.info(f"Audio settings: {sample_rate}Hz, {chunk_duration_ms}ms chunks, {channels} channels")

    def create_capture() -> AudioCapturePipeline:
        return AudioCapturePipeline(
            sample_rate=sample_rate,
            chunk_duration_ms=chunk_duration_ms,
            channels=channels,
            device_index=device_index,
        )
    return create_capture


def build_controller(config: VoiceDraftConfig,
                     language: Optional[str] = None,
                     export_dir: Optional[str] = None) -> RecordingLifecycleController:
    """Wire a controller for the configured provider and microphone."""
    controller = RecordingLifecycleController(
        channel_factory=build_channel_factory(config),
        capture_factory=build_capture_factory(config),
        language=language or config.get_language(),
        exporter=TranscriptExporter(export_dir or config.get_export_directory()),
        publisher=TranscriptPublisher(),
    )
    logger.info("RecordingLifecycleController ready")
    return controller
