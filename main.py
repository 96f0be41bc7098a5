"""WSGI entrypoint for the recipebox API.

Run locally with ``flask --app main run``; production deployments point
Gunicorn at the ``app`` object defined below. The storage backend is chosen
through ``RECIPES_BACKEND`` (see :func:`recipebox.backend_from_env`).
"""

from recipebox import create_app

app = create_app()


__all__ = ["app"]
