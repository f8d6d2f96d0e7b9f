"""
Trip Broker Backend
===================
Entry point for the assignment engine API.

    uvicorn main:app --reload          # development
    python main.py                     # host/port from settings (API_HOST, API_PORT)
"""

import uvicorn

from tripbroker.api.app import create_app
from tripbroker.config import settings

app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.api_host, port=settings.api_port)
