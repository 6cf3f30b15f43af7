"""Container entrypoint: apply migrations, then exec uvicorn.

Audit runs live inside the server process, so uvicorn is given a graceful
shutdown window slightly longer than SHUTDOWN_GRACE_SECONDS to let the
lifespan drain them.
"""

import os
import subprocess
import sys


def run_migrations() -> bool:
    print("Running database migrations...")
    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as e:
        print(f"Migration failed: {e.stderr}", file=sys.stderr)
        return False

    print(result.stdout)
    return True


def start_api() -> None:
    port = os.getenv("PORT", "8000")
    host = os.getenv("API_HOST", "0.0.0.0")
    workers = os.getenv("API_WORKERS", "1")
    grace = float(os.getenv("SHUTDOWN_GRACE_SECONDS", "25"))

    print(f"Starting API server on {host}:{port} with {workers} worker(s)...")

    os.execvp(
        "uvicorn",
        [
            "uvicorn",
            "api.main:app",
            "--host",
            host,
            "--port",
            port,
            "--workers",
            workers,
            "--proxy-headers",
            "--forwarded-allow-ips",
            "*",
            "--timeout-graceful-shutdown",
            str(int(grace) + 5),
        ],
    )


def main() -> None:
    if os.getenv("RUN_MIGRATIONS", "true").lower() == "true" and not run_migrations():
        sys.exit(1)

    start_api()


if __name__ == "__main__":
    main()
