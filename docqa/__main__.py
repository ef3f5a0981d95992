"""
Запуск HTTP API:
  python -m docqa
"""

import uvicorn

from docqa.config import settings

if __name__ == "__main__":
    uvicorn.run("docqa.main:app", host=settings.app_host, port=settings.app_port, reload=False)
