"""Single-shot activities executed by the polling orchestration.

- poll_status: one status query, normalised into a ``PollResult``
"""
