# Overview: WSGI entry point (FLASK_APP=wsgi.py, or gunicorn wsgi:app).

from giftcards import create_app

app = create_app()
