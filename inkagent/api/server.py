"""FastAPI server for inkagent.

This module is a thin ASGI entrypoint that delegates to create_app().
"""

from inkagent.api.app import create_app

app = create_app()
