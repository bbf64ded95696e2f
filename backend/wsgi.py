# backend/wsgi.py
import atexit

from orderdesk import create_app, shutdown

app = create_app()
atexit.register(shutdown, app)
