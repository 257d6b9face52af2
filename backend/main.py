import os
import time

import uvicorn
from fastapi import Request

from api.endpoints import router
from config import ENV, create_app

app = create_app()
app.include_router(router)


@app.middleware("http")
async def access_log(request: Request, call_next):
    """One [ACCESS] line per request, including failures."""
    started = time.perf_counter()
    route = f"{request.method} {request.url.path}"
    try:
        response = await call_next(request)
    except Exception as e:
        print(f"[ACCESS][ERROR] {route} failed after {(time.perf_counter() - started) * 1000.0:.1f}ms: {e}")
        raise
    peer = f"{request.client.host}:{request.client.port}" if request.client else "-"
    print(f"[ACCESS] {peer} {route} -> {response.status_code} "
          f"{(time.perf_counter() - started) * 1000.0:.1f}ms")
    return response


def main():
    """Run the API with uvicorn (auto-reload outside production)."""
    production = ENV == "production"
    port = int(os.getenv("PORT", 8001))
    # reload and workers are mutually exclusive in uvicorn
    workers = None if not production else int(os.getenv("WORKERS", 2))

    print(f"[SERVER] ENV={ENV} port={port} reload={not production} workers={workers or 1}")

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        reload=not production,
        workers=workers,
        access_log=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
