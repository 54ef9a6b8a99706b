"""Pydantic schemas for step payloads and the HTTP API."""
