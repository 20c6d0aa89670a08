"""Run the viewer app: ``python -m loggery [--host HOST] [--port PORT]``."""

import argparse

import uvicorn


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="loggery", description="Serve the live log viewer.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="auto-reload on code changes")
    args = parser.parse_args(argv)
    uvicorn.run("loggery.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
