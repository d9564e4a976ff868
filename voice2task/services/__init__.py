from .speech_session import SpeechSession, create_speech_session
from .voice_task_pipeline import VoiceTaskPipeline, PipelineOutcome

__all__ = ["SpeechSession", "create_speech_session", "VoiceTaskPipeline", "PipelineOutcome"]
