"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Expose a plain text-completion capability (prompt in, free text out).
- Leave fallback decisions to callers: failures are raised, never hidden.
"""
