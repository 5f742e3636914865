"""
Integration tests for the call-and-transcribe pipeline.

Test components together through the HTTP surface:
- API endpoints (FastAPI TestClient with an injected container)
- Facades, managers and orchestrator wired as in production
- Provider clients mocked, call records in the in-memory store
"""
