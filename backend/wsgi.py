# backend/wsgi.py
# Entry point for `flask run` / `python -m flask` and WSGI servers.
from barflow import create_app

app = create_app()
