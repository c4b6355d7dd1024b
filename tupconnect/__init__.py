"""Backend package: configuration, API, and the matching pipelines.

The service classifies free-text student interests into the TUPConnect
organization taxonomy using the Gemini API with model fallback.
"""
