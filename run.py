"""Application entry point for the TaskEarn backend."""

from __future__ import annotations

import os

import uvicorn


def main() -> None:
    """Run the backend FastAPI server."""

    uvicorn.run(
        "taskearn:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
