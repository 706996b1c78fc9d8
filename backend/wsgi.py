# backend/wsgi.py
from tillsup import create_app

app = create_app()
