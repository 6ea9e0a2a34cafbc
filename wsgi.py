# wsgi.py
"""Production WSGI entry point: gunicorn wsgi:application"""

from app import create_app, verify_transport

application = create_app()
verify_transport(application)
