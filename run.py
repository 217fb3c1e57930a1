"""Run uvicorn. Usage: python run.py."""
import uvicorn

from photodesk.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "photodesk.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
    )
