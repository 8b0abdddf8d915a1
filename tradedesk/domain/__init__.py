"""
Exchange entities, value rules and repository/exchange ports.

Plain dataclasses and functions only.
"""
