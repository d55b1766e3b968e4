"""Strengths — self-assessment backend.

Accounts, sessions, and the personal and community capability lists
behind the "find your strengths" exercise.
"""

__version__ = "0.1.0"
