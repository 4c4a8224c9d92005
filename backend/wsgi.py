# backend/wsgi.py
from staffgate import create_app

app = create_app()
