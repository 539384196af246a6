"""Durable Functions orchestrator functions.

Manages the polling state machine for a single target:
1. Durable timer until the next deadline
2. Status check → keep polling, stop, or trigger
3. One-shot action call when the target is ready
"""
