"""
Parley - a streaming conversation server.

This package provides:
- A chat endpoint streaming agent progress via Server-Sent Events
- Durable conversation history with whole-table persistence
- Session resolution backed by a pluggable session store
- LangChain-backed chat agents
"""

__version__ = "0.3.0"
