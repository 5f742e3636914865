"""
Call-and-Transcribe Pipeline.

Places outbound recorded calls through the Plivo voice API, transcribes the
recordings through Deepgram and persists the results for later analysis:
- Resilient facades (circuit breaker + retry with exponential backoff)
- Recording-callback orchestration (webhook -> background transcription)
- Call record storage (Redis)

Architecture: FastAPI service + httpx provider clients + resilience layer
"""

__version__ = "0.1.0"
