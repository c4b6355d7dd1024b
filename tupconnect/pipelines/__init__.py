"""Request-scoped pipeline steps for organization matching.

Each step is callable independently: normalization, prompt construction,
the model fallback loop, reply extraction, and organization ranking.
"""
