"""Clients for external generative AI providers."""
