"""Newsroom taxonomy service."""
