"""Cloud Saves HTTP API.

JSON routes under /api/ backed by ``CloudSavesService``.

Usage:
    cloudsaves serve              # API on localhost:5556
    cloudsaves serve --port 8080  # Custom port
"""
