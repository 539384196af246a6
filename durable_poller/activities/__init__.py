"""Durable Functions activity functions.

Each activity performs a single outbound HTTP call:
- check_status: GET the status URL and classify the response
- fire_action: POST the run's content to the action URL
"""
