"""
Intent resolution.

Responsibilities:
- Ask the LLM to turn a free-text query into structured preferences.
- Extract and decode the JSON payload from a possibly noisy reply.
- Fall back to ordered keyword tables when the LLM is unusable.
- Apply caller overrides and fill defaults (people count, mode, season).
"""
