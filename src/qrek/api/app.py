import logging
import os

import uvicorn
from fastapi import FastAPI

from qrek.api.public import router as public_router

app = FastAPI(title="qrek tempo calendar api")
app.include_router(public_router)


def main() -> None:
    logging.basicConfig(level=os.environ.get("QREK_LOG_LEVEL", "INFO").upper())
    host, _, port = os.environ.get("LISTEN_AT", "0.0.0.0:8000").rpartition(":")
    uvicorn.run(app, host=host or "0.0.0.0", port=int(port))
