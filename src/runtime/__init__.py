# path: src/runtime/__init__.py

"""
Runtime glue shared by the agent's components.

Currently holds the failure helpers that turn task, connection, command
and configuration failures into monitoring events.
"""
