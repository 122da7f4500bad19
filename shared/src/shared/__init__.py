"""Shared enums, settings, logging, request model and dispatch log storage."""
