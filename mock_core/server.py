import argparse
import os
from pathlib import Path

import uvicorn


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mock exam session server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--db-dir", default="data")
    parser.add_argument("--api-base-url", default=None, help="Remote mock service base URL")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    db_dir = Path(args.db_dir)
    db_dir.mkdir(parents=True, exist_ok=True)
    # Read by mock_core.config when uvicorn imports the app
    os.environ["DB_DIR"] = str(db_dir)
    if args.api_base_url:
        os.environ["MOCK_API_BASE_URL"] = args.api_base_url

    uvicorn.run(
        "mock_core.app:app",
        host=args.host,
        port=args.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
