"""
Core infrastructure for Questline.

Configuration, structured logging, database access, the event bus and
input validation. No quest domain logic lives here.
"""
