# Routes package init
"""
JSONWire — Built-in Handlers
==============================

What:  Handlers shipped with the package and mounted by jsonwire.main.

Route Inventory:
    - health.py:    GET  /health                  (service health check)
    - greeting.py:  POST /api/greeting/hello      (demo: typed parameters)
                    POST /api/greeting/visits     (demo: sessions)

Handlers stay thin: decode the parameters, do the work, return a value or
raise an ApiError. The envelope protocol writes the response.
"""
