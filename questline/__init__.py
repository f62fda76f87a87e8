"""
Questline - daily quest lifecycle engine.

Generates per-owner daily quest batches, tracks progress from gameplay
actions, settles one-time reward claims and expires stale quests.
"""

__version__ = "1.0.0"
