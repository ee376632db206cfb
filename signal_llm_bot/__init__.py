"""Signal messaging bot that relays mentions to an LLM."""

__version__ = "0.1.0"
