# backend/wsgi.py
from vendascontrol import create_app

app = create_app()
