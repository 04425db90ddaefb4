"""Core gameplay primitives (geodesy, scoring, stream events, analyst context).

Kept free of FastAPI and asyncio concerns so it can be reused by the session layer, scripts, and tests.
"""
