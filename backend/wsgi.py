# backend/wsgi.py
from inventory_tracker import create_app

app = create_app()
