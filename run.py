#!/usr/bin/env python3
"""Run the gateway. Usage: python run.py (HOST / PORT / GEMINI_API_KEY from env or .env)."""
import sys

import uvicorn

from config import settings
from app.domain.errors import MissingCredentialError


def main() -> int:
    from main import ensure_credentials

    try:
        ensure_credentials(settings)
    except MissingCredentialError:
        return 1
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT)
    return 0


if __name__ == "__main__":
    sys.exit(main())
