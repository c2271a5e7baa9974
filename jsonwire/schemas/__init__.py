# Schemas package init
"""
JSONWire — Pydantic Schemas
=============================

What:  Wire shapes: the response envelope and the built-in service payloads.
"""
