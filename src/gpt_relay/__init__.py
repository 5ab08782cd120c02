"""gpt-relay -- conversational completion proxy with persistent, token-bounded history."""

__version__ = '0.1.0'
