"""
Ingestion — text normalisation, chunking, embedding and indexing.

This module is responsible for the write path that converts extracted
plain text into embedded chunks stored in a vector database.
"""
