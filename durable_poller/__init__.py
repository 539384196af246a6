"""Durable Poller.

Azure Durable Functions app that polls a target's status URL on an
exponential backoff schedule and fires a follow-up action exactly once
when the target reports ready.
"""

__version__ = "0.1.0"
