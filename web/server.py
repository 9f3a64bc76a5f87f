"""
Webhook server startup helpers.
"""

from threading import Thread

import uvicorn
from fastapi import FastAPI


def start_webhook_server(app: FastAPI, host: str, port: int) -> Thread:
    """
    Start the webhook/API server in a daemon thread.

    The server runs its own event loop; Discord sends are bridged back to
    the bot's loop by the chat adapter.
    """
    print(f"🌐 Webhook server listening on http://{host}:{port}")

    def _run() -> None:
        uvicorn.run(
            app,
            host=host,
            port=port,
            log_level="warning",
        )

    thread = Thread(target=_run, name="webhook-server", daemon=True)
    thread.start()
    return thread
