"""BookTech application package root.

REST backend for the BookTech bookstore / e-reader plus a small reader
client (``booktech.client``) that keeps reading progress in sync with it.
Use ``booktech.startup.wiring.create_app`` to build the Flask application.
"""

__all__ = [
]
