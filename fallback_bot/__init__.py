"""Dialogflow fallback webhook with a per-user reply cooldown."""

__version__ = "0.1.0"
