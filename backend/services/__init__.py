"""
Domain operations behind the HTTP routes.

Functions take a `Database` (plus whatever integrations they need) and the
authenticated caller, and raise `backend.errors.ServiceError` subclasses.
"""
