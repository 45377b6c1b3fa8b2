"""
Task time estimation.

Components:
- client.py: OpenAI-compatible (OpenRouter) streaming client with model fallback
- offline.py: deterministic client used when no API key is configured
- estimator.py: prompt + reply parsing, heuristic fallback
"""
