"""
cartesia-gateway Services Layer.

Business logic between the API layer and the provider.

Components:
    - validators.py: Request validation and normalization
    - upstream.py: Retrying executor and pass-through sender
    - tts_service.py: Synthesis orchestration
    - voice_service.py: Voice catalogue proxy and cache hook
    - auth_service.py: Access-token issuance and token helpers
"""
from .auth_service import AuthService
from .tts_service import SynthesisResult, TTSService
from .upstream import RetryPolicy, RetryState, UpstreamExecutor, UpstreamResponse
from .voice_service import NullVoiceCache, VoiceCache, VoiceService

__all__ = [
    "TTSService",
    "SynthesisResult",
    "VoiceService",
    "VoiceCache",
    "NullVoiceCache",
    "AuthService",
    "UpstreamExecutor",
    "UpstreamResponse",
    "RetryPolicy",
    "RetryState",
]
