"""WSGI entry point: `gunicorn kontrak.wsgi:app`."""

from kontrak.server import bootstrap, load_settings

app = bootstrap(load_settings())
application = app
