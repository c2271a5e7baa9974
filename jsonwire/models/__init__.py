# Models package init
"""
JSONWire — SQLAlchemy Models
==============================

What:  ORM models of the tables jsonwire owns (currently `sessions`).
"""
