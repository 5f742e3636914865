"""
Test fixtures for callscribe.

Contains sample data for testing:
- deepgram_response.json: Prerecorded transcription response for a two-speaker call
"""
