import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .core.logging import setup_logging
from .routers import auth, dashboard

setup_logging()
logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(dashboard.router)


@app.on_event("shutdown")
async def on_shutdown():
    console = getattr(app.state, "console", None)
    if console is not None:
        await console.aclose()
        logger.info("Records API client closed")


if __name__ == "__main__":
    uvicorn.run("hms_console.main:app", host="127.0.0.1", port=8000, reload=settings.is_development)
