"""
Shared utilities: structured logging and text helpers.
"""
