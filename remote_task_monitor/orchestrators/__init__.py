"""Monitoring orchestration.

- poll_loop: timed retry engine around a status query
- substages: operation kind → target substage lookup
- controller: binds poll outcomes to entity-state transitions
- deployment_delete: deployment delete status step
- runner: background execution of sessions
"""
