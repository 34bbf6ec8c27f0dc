import uvicorn

from engagement.config import settings
from engagement.main import app  # noqa: F401

if __name__ == "__main__":
    uvicorn.run("engagement.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
