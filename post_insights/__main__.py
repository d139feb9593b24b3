"""Run the API server: ``python -m post_insights``."""

import uvicorn

from post_insights.config import settings

if __name__ == "__main__":
    uvicorn.run("post_insights.main:app", host="0.0.0.0", port=settings.app_port, log_level=settings.log_level)
