"""Schemas shared between the TaskFlow server and its client."""
