# =============================================
# File: flakyapi/cli/serve.py
# Purpose: CLI entrypoint to run the demo server on the fixed port.
# Usage:
#   python -m flakyapi.cli.serve --host 0.0.0.0 --log-level info
# =============================================
from __future__ import annotations
import argparse

import uvicorn

from flakyapi.main import create_app, log_banner
from flakyapi.utils.logging import configure_logging
from flakyapi.utils.settings import PORT, load_settings


def main(argv=None):
    ap = argparse.ArgumentParser(description=f"Run the flaky demo server on port {PORT}.")
    ap.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    ap.add_argument("--log-level", default=None, help="Override LOG_LEVEL (debug, info, warning, ...)")
    args = ap.parse_args(argv)

    settings = load_settings()
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level.upper()})

    configure_logging(settings)
    app = create_app(settings)
    log_banner("localhost" if args.host == "0.0.0.0" else args.host)
    uvicorn.run(app, host=args.host, port=PORT, log_level=settings.log_level.lower())

if __name__ == "__main__":
    main()
