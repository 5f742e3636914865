"""
Unit tests for the call-and-transcribe pipeline.

Test individual components in isolation:
- Backoff, retry engine and circuit breaker (fake clock, recorded sleeps)
- Voice and transcription facades (envelopes, retry classification)
- Provider clients (httpx.MockTransport) and managers
- Recording callback orchestrator
- Call record repository (mocked async Redis)
"""
