"""Run the API with uvicorn: ``python -m labor_rag``."""
from __future__ import annotations

import uvicorn

from labor_rag.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("labor_rag.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
