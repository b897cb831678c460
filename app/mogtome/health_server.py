import logging

from fastapi import FastAPI

from .config import load_settings
from .storage import load_pull_history
from .version import __version__

log = logging.getLogger("mogtome.health")

app = FastAPI()


@app.get("/health/ready")
def ready():
    return {
        "status": "ready",
        "service": "mogtome",
        "version": __version__,
    }


@app.get("/health/last-cycle")
def last_cycle():
    settings = load_settings()
    history = load_pull_history(settings.data_root)
    if not history:
        return {"status": "unknown", "last_cycle": None}

    latest = history[-1]
    status = "ok" if latest.get("success") else "failing"
    if status == "failing":
        log.warning("Last sync cycle failed: %s", latest.get("error"))
    return {"status": status, "last_cycle": latest}
