from __future__ import annotations

import uvicorn

from .config import settings


def main() -> None:  # pragma: no cover - process entrypoint
    uvicorn.run("poeprice.api.main:app", host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":  # pragma: no cover
    main()
