# backend/wsgi.py
from jewelstock import create_app

app = create_app()
