# Overview: WSGI entry point (FLASK_APP=wsgi.py).

from guichet import create_app

app = create_app()
