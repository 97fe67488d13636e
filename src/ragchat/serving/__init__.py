"""
Serving — FastAPI application for the chat agent and document management.

This module exposes chat turns, document upload / deletion and knowledge
base statistics over HTTP so the system can run as a standalone container.
"""
