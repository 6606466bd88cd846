#!/usr/bin/env python3
"""Course Portal API server.

Launch: python3 run_portal.py
Serves at http://0.0.0.0:8000 (or PORT env var)
"""

import logging
import os

import uvicorn

from course_portal.config import HOST, LOG_LEVEL, PORT


def main():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log = logging.getLogger("course_portal")

    if not os.environ.get("SUPABASE_URL"):
        log.warning("SUPABASE_URL not set. Set SUPABASE_URL and SUPABASE_SERVICE_KEY; "
                    "continuing anyway for local development")

    from course_portal.app import create_app
    app = create_app()
    log.info("Starting server on http://%s:%s", HOST, PORT)
    uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
