"""Inbound command processing helpers.

This package centralizes precondition checks so every viewer command flows
through the same pipeline and shows up consistently in server logs.
"""
